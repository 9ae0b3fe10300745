"""Storage operations the chat relay needs: ownership lookup, appends and usage counting."""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlmodel import Session

from app.models.conversation import ChatMessage, Conversation
from app.models.preset import Preset, UsageCounter

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _increment_usage(session: Session, user_id: str, preset_id: str) -> None:
    # Single upsert statement so concurrent exchanges never lose an increment.
    stmt = sqlite_insert(UsageCounter).values(user_id=user_id, preset_id=preset_id, request_count=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "preset_id"],
        set_={"request_count": UsageCounter.request_count + 1},
    )
    session.connection().execute(stmt)


class ChatStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def get_owned_conversation(self, conversation_id: int, user_id: str) -> Conversation | None:
        with Session(self.engine) as session:
            conv = session.get(Conversation, conversation_id)
            if not conv or conv.owner_id != user_id:
                return None
            return conv

    def get_preset(self, preset_id: str) -> Preset | None:
        with Session(self.engine) as session:
            return session.get(Preset, preset_id)

    def insert_message(
        self,
        conversation_id: int,
        role: str,
        content: str | list[dict[str, Any]],
        timestamp: datetime | None = None,
    ) -> None:
        with Session(self.engine) as session:
            msg = ChatMessage(
                conversation_id=conversation_id,
                role=role,
                content=content,
                created_at=timestamp or _now(),
            )
            session.add(msg)
            session.commit()

    def touch_conversation(self, conversation_id: int, timestamp: datetime | None = None) -> None:
        with Session(self.engine) as session:
            conv = session.get(Conversation, conversation_id)
            if conv:
                conv.updated_at = timestamp or _now()
                session.add(conv)
                session.commit()

    def increment_usage(self, user_id: str, preset_id: str) -> None:
        with Session(self.engine) as session:
            _increment_usage(session, user_id, preset_id)
            session.commit()

    def commit_exchange(self, conversation_id: int, user_id: str, preset_id: str, reply: str) -> None:
        """Append the assistant reply, bump the conversation and count the usage in one transaction."""
        now = _now()
        with Session(self.engine) as session:
            session.add(ChatMessage(conversation_id=conversation_id, role="assistant", content=reply, created_at=now))
            conv = session.get(Conversation, conversation_id)
            if conv:
                conv.updated_at = now
                session.add(conv)
            _increment_usage(session, user_id, preset_id)
            session.commit()
        logger.debug(f"Committed exchange for conversation {conversation_id} ({len(reply)} chars)")

