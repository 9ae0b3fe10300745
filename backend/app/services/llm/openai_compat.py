"""Streaming client for OpenAI-compatible chat completion endpoints."""

import json
import logging
from typing import Any

import httpx

from app.services.llm.base import BaseUpstreamClient, UpstreamError, UpstreamReply

logger = logging.getLogger(__name__)

DEFAULT_COMPLETIONS_PATH = "/v1/chat/completions"


def normalize_endpoint(url: str, completions_path: str = DEFAULT_COMPLETIONS_PATH) -> str:
    """Accept either a bare host or a full completions URL."""
    if url.endswith("/"):
        url = url[:-1]
    if "/chat/completions" not in url:
        url += completions_path
    return url


def _decode_error_body(response: httpx.Response, raw: bytes) -> Any:
    text = raw.decode(response.encoding or "utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class OpenAICompatibleClient(BaseUpstreamClient):
    def __init__(
        self,
        completions_path: str = DEFAULT_COMPLETIONS_PATH,
        timeout: httpx.Timeout | float = 120.0,
        temperature: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.completions_path = completions_path
        self.timeout = timeout
        self.temperature = temperature
        self._transport = transport

    async def send(
        self, endpoint_url: str, api_key: str, model_id: str, messages: list[dict[str, Any]]
    ) -> UpstreamReply:
        url = normalize_endpoint(endpoint_url, self.completions_path)
        payload: dict[str, Any] = {"model": model_id, "messages": messages, "stream": True}
        if self.temperature is not None:
            payload["temperature"] = self.temperature

        client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        try:
            request = client.build_request(
                "POST",
                url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Accept": "text/event-stream",
                },
            )
            response = await client.send(request, stream=True)
        except BaseException:
            await client.aclose()
            raise

        if response.is_success:
            logger.debug(f"Upstream stream opened: {url} ({model_id})")
            return UpstreamReply(response=response, _client=client)

        try:
            raw = await response.aread()
        finally:
            await response.aclose()
            await client.aclose()
        logger.warning(f"Upstream {url} rejected request with HTTP {response.status_code}")
        return UpstreamReply(error=UpstreamError(response.status_code, _decode_error_body(response, raw)))
