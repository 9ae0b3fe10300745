"""Chat relay - persists the user turn, streams the upstream reply, commits the exchange.

Flow for one request:
1. Check the conversation belongs to the caller and the preset exists.
2. Offload inline attachments of the new user message, then store it.
3. Build the outbound context and open the upstream stream.
4. Re-emit each decoded delta to the caller while accumulating it.
5. On a clean end with non-blank text, store the assistant reply and count usage.

Anything that fails before step 4 raises a RelayError. Once streaming has
started, failures only end the stream; the caller always gets the final
``[DONE]`` event unless it disconnected.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import anyio
import httpx

from app.core.errors import InvalidConfiguration, Unauthorized, UpstreamHandshakeFailed, UpstreamStreamError
from app.services.llm.base import BaseUpstreamClient, UpstreamReply
from app.services.offload import BaseOffloader, has_inline_payload
from app.services.relay.context import augmentation_context, build_context, first_text
from app.services.relay.sse import DONE_EVENT, encode_event, iter_deltas
from app.services.search import BaseSearchProvider
from app.services.storage import ChatStore

logger = logging.getLogger(__name__)


@dataclass
class Exchange:
    user_id: str
    conversation_id: int
    preset_id: str


class RelayStream:
    """One open upstream stream plus what is needed to commit it."""

    def __init__(self, store: ChatStore, reply: UpstreamReply, exchange: Exchange):
        self.store = store
        self.reply = reply
        self.exchange = exchange
        self.committed = False

    async def events(self) -> AsyncIterator[bytes]:
        parts: list[str] = []
        completed = False
        try:
            async for delta in iter_deltas(self.reply.aiter_bytes()):
                parts.append(delta)
                yield encode_event({"content": delta})
            completed = True
        except asyncio.CancelledError:
            logger.info(f"Client left conversation {self.exchange.conversation_id} mid-stream; nothing committed")
            raise
        except httpx.HTTPError as e:
            logger.warning(f"Upstream stream broke for conversation {self.exchange.conversation_id}: {e}")
        except Exception:
            logger.exception(f"Relay stream failed for conversation {self.exchange.conversation_id}")
        finally:
            # Runs while the request is being cancelled, so the close must not be cancelled too.
            with anyio.CancelScope(shield=True):
                await self.aclose()

        if completed:
            self._commit("".join(parts))
        yield DONE_EVENT

    def _commit(self, text: str) -> None:
        if not text.strip():
            logger.info(f"Empty reply for conversation {self.exchange.conversation_id}; nothing committed")
            return
        try:
            self.store.commit_exchange(
                self.exchange.conversation_id, self.exchange.user_id, self.exchange.preset_id, text
            )
            self.committed = True
        except Exception:
            logger.exception(f"Failed to store reply for conversation {self.exchange.conversation_id}")

    async def aclose(self) -> None:
        await self.reply.aclose()


class ChatRelay:
    def __init__(
        self,
        store: ChatStore,
        upstream: BaseUpstreamClient,
        search: BaseSearchProvider | None = None,
        offloader: BaseOffloader | None = None,
        tz: str = "UTC",
    ):
        self.store = store
        self.upstream = upstream
        self.search = search
        self.offloader = offloader
        self.tz = tz

    async def open(
        self,
        user_id: str,
        conversation_id: int,
        preset_id: str,
        messages: list[dict[str, Any]],
        use_search: bool = False,
    ) -> RelayStream:
        """Run everything up to the first upstream byte and return the stream to relay."""
        if self.store.get_owned_conversation(conversation_id, user_id) is None:
            raise Unauthorized(f"Conversation {conversation_id} not found")
        preset = self.store.get_preset(preset_id)
        if preset is None:
            raise InvalidConfiguration(f"Unknown preset '{preset_id}'")
        if not messages:
            raise InvalidConfiguration("No messages to send")

        messages = [dict(m) for m in messages]
        trailing = messages[-1]
        augmentation = None

        if trailing["role"] == "user":
            if has_inline_payload(trailing["content"]):
                trailing["content"] = await self._offload(trailing["content"])
            now = datetime.now(timezone.utc)
            self.store.insert_message(conversation_id, "user", trailing["content"], now)
            self.store.touch_conversation(conversation_id, now)

            if use_search:
                augmentation = await self._augment(first_text(trailing["content"]))
        else:
            logger.warning(
                f"Last message for conversation {conversation_id} has role {trailing['role']!r}; "
                "forwarding without storing it"
            )

        outbound = build_context(
            messages,
            persona=preset.system_prompt,
            augmentation=augmentation,
            tz=self.tz,
        )
        logger.info(
            f"Relaying conversation {conversation_id} for {user_id} to preset {preset_id} "
            f"({len(outbound)} messages, search={'yes' if augmentation else 'no'})"
        )

        try:
            reply = await self.upstream.send(preset.url, preset.api_key, preset.model_id, outbound)
        except httpx.HTTPError as e:
            logger.warning(f"Upstream unreachable for preset {preset_id}: {e}")
            raise UpstreamStreamError(f"Upstream unreachable: {e}") from e

        if reply.error is not None:
            raise UpstreamHandshakeFailed(reply.error.status_code, reply.error.body)

        return RelayStream(self.store, reply, Exchange(user_id, conversation_id, preset_id))

    async def _offload(self, parts: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if self.offloader is None:
            return parts
        try:
            return await self.offloader.offload(parts)
        except Exception as e:
            logger.warning(f"Attachment offload unavailable, storing inline payload: {e}")
            return parts

    async def _augment(self, query: str) -> str | None:
        if self.search is None or not query:
            return None
        try:
            results = await self.search.query(query)
        except Exception as e:
            logger.warning(f"Search augmentation failed: {e}")
            return None
        if not results:
            return None
        return augmentation_context(query, results)
