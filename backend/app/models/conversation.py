"""Conversation (chat session) and message models for chat history persistence."""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel


class Conversation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(index=True)
    title: str = Field(default="New Conversation")
    preset_id: Optional[str] = Field(default=None, foreign_key="preset.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    messages: list["ChatMessage"] = Relationship(back_populates="conversation")


class ChatMessage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="conversation.id", index=True)
    role: str  # "user" | "assistant" | "system"
    # Plain text, or a list of typed parts: {"type": "text", ...} / {"type": "image_url", ...}
    content: Union[str, list[dict[str, Any]]] = Field(sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    conversation: Optional[Conversation] = Relationship(back_populates="messages")
