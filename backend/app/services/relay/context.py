"""Builds the message list sent upstream.

Order is fixed: time context, persona, prior history, search results (if
any), then the new user message.
"""

from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

Message = dict[str, Any]


def time_context(now: datetime) -> str:
    return (
        f"Current date and time: {now.strftime('%A, %B %d, %Y %H:%M')} ({now.tzname()}). "
        "Use this when the user refers to relative dates or recent events."
    )


def augmentation_context(query: str, results: str) -> str:
    return (
        f'Web search results for "{query}":\n\n{results}\n\n'
        "Use these results to answer the next message if they are relevant, "
        "and say so when they are not."
    )


def first_text(content: str | list[dict[str, Any]]) -> str:
    """The first text part of a message, used as the search query."""
    if isinstance(content, str):
        return content.strip()
    for part in content:
        if part.get("type") == "text" and isinstance(part.get("text"), str):
            return part["text"].strip()
    return ""


def build_context(
    messages: list[Message],
    persona: str | None = None,
    augmentation: str | None = None,
    now: datetime | None = None,
    tz: str = "UTC",
) -> list[Message]:
    """Return the outbound list for `messages`, whose last entry is the new turn."""
    now = (now or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz))

    built: list[Message] = [{"role": "system", "content": time_context(now)}]
    if persona and persona.strip():
        built.append({"role": "system", "content": persona})

    *history, trailing = messages
    built.extend({"role": m["role"], "content": m["content"]} for m in history)
    # Search results go right before the new message, after prior history.
    if augmentation:
        built.append({"role": "system", "content": augmentation})
    built.append({"role": trailing["role"], "content": trailing["content"]})
    return built
