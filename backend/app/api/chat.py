"""Chat relay endpoint: forwards a conversation to its preset and streams the reply."""

import logging
from typing import Any, AsyncIterator, Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.background import BackgroundTask

from app.api.deps import get_relay
from app.core.auth import get_current_user
from app.services.relay.relay import ChatRelay, RelayStream

router = APIRouter()
logger = logging.getLogger(__name__)


class MessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str | list[dict[str, Any]]


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: int = Field(alias="sessionId")
    preset_id: str = Field(alias="presetId")
    messages: list[MessageIn] = Field(min_length=1)
    use_search: bool = Field(default=False, alias="useSearch")


@router.post("")
async def chat(
    request: Request,
    body: ChatRequest,
    user_id: str = Depends(get_current_user),
    relay: ChatRelay = Depends(get_relay),
):
    stream = await relay.open(
        user_id=user_id,
        conversation_id=body.session_id,
        preset_id=body.preset_id,
        messages=[m.model_dump() for m in body.messages],
        use_search=body.use_search,
    )
    return StreamingResponse(
        relay_until_disconnect(request, stream),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        background=BackgroundTask(stream.aclose),
    )


async def relay_until_disconnect(request: Request, stream: RelayStream) -> AsyncIterator[bytes]:
    """Forward relay events, closing the relay as soon as the client has gone."""
    events = stream.events()
    try:
        async for event in events:
            if await request.is_disconnected():
                logger.info(f"Client disconnected from conversation {stream.exchange.conversation_id}")
                break
            yield event
    finally:
        await events.aclose()
