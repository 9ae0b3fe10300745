"""REST API for conversation (chat session) management."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.conversation import ChatMessage, Conversation
from app.models.preset import Preset

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateConversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    preset_id: str = Field(alias="presetId")
    title: str = "New Conversation"


class RenameConversation(BaseModel):
    title: str = Field(min_length=1, max_length=200)


def _owned(session: Session, conversation_id: int, user_id: str) -> Conversation:
    conv = session.get(Conversation, conversation_id)
    if not conv or conv.owner_id != user_id:
        logger.debug(f"Conversation {conversation_id} not found for {user_id}")
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conv


def _summary(c: Conversation) -> dict:
    return {
        "id": c.id,
        "title": c.title,
        "preset_id": c.preset_id,
        "created_at": c.created_at.isoformat(),
        "updated_at": c.updated_at.isoformat(),
    }


@router.get("/")
async def list_conversations(
    user_id: str = Depends(get_current_user), session: Session = Depends(get_session)
):
    conversations = session.exec(
        select(Conversation)
        .where(Conversation.owner_id == user_id)
        .order_by(Conversation.updated_at.desc())  # type: ignore
    ).all()
    return [_summary(c) for c in conversations]


@router.post("/", status_code=201)
async def create_conversation(
    body: CreateConversation,
    user_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not session.get(Preset, body.preset_id):
        raise HTTPException(status_code=400, detail=f"Unknown preset '{body.preset_id}'")
    conv = Conversation(owner_id=user_id, title=body.title, preset_id=body.preset_id)
    session.add(conv)
    session.commit()
    session.refresh(conv)
    return _summary(conv)


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: int,
    user_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    conv = _owned(session, conversation_id, user_id)

    messages = session.exec(
        select(ChatMessage)
        .where(ChatMessage.conversation_id == conversation_id)
        .order_by(ChatMessage.created_at, ChatMessage.id)  # type: ignore
    ).all()

    return {
        **_summary(conv),
        "messages": [
            {
                "id": m.id,
                "role": m.role,
                "content": m.content,
                "created_at": m.created_at.isoformat(),
            }
            for m in messages
        ],
    }


@router.patch("/{conversation_id}")
async def rename_conversation(
    conversation_id: int,
    body: RenameConversation,
    user_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    conv = _owned(session, conversation_id, user_id)
    conv.title = body.title
    conv.updated_at = datetime.now(timezone.utc)
    session.add(conv)
    session.commit()
    session.refresh(conv)
    return _summary(conv)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: int,
    user_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    conv = _owned(session, conversation_id, user_id)

    # Delete messages first
    messages = session.exec(
        select(ChatMessage).where(ChatMessage.conversation_id == conversation_id)
    ).all()
    for msg in messages:
        session.delete(msg)

    session.delete(conv)
    session.commit()
    logger.debug(f"Deleted conversation {conversation_id}")
    return {"status": "deleted"}
