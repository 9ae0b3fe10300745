"""Server-sent event framing: decode upstream deltas, encode events for the client.

Upstream sends lines like ``data: {"choices": [{"delta": {"content": "Hi"}}]}``
and finishes with ``data: [DONE]``. Some compatible servers send the flatter
``data: {"content": "Hi"}`` instead; both are accepted.
"""

import codecs
import json
import logging
from typing import Any, AsyncIterable, AsyncIterator

from app.core.errors import DecodeSkip

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE = "[DONE]"
DONE_EVENT = f"{DATA_PREFIX} {DONE}\n\n".encode("utf-8")


def extract_delta(payload: Any) -> str:
    """Pull the text delta out of one parsed frame, or raise DecodeSkip."""
    # Shape A: {"choices": [{"delta": {"content": "..."}}]}
    try:
        content = payload["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if isinstance(content, str) and content:
        return content

    # Shape B: {"content": "..."}
    if isinstance(payload, dict):
        content = payload.get("content")
        if isinstance(content, str) and content:
            return content

    raise DecodeSkip("frame carries no text delta")


def parse_line(line: str) -> str | None:
    """Return the delta carried by one line, or None for lines that carry nothing."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    body = line[len(DATA_PREFIX):].strip()
    if not body or body == DONE:
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeSkip(f"malformed frame: {e}") from e
    return extract_delta(payload)


async def iter_deltas(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield text deltas from a raw upstream byte stream.

    Partial lines (and partial UTF-8 sequences) are carried over between
    chunks, so the output does not depend on where the chunks were split.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in chunks:
        buffer += decoder.decode(chunk)
        *lines, buffer = buffer.split("\n")
        for line in lines:
            delta = _safe_parse(line)
            if delta:
                yield delta

    buffer += decoder.decode(b"", final=True)
    if buffer:
        delta = _safe_parse(buffer)
        if delta:
            yield delta


def _safe_parse(line: str) -> str | None:
    try:
        return parse_line(line)
    except DecodeSkip as e:
        logger.debug(f"Skipping frame: {e}")
        return None


def encode_event(data: Any) -> bytes:
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    return f"{DATA_PREFIX} {payload}\n\n".encode("utf-8")
