"""Preset listing and per-user usage counters."""

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.preset import Preset, UsageCounter

router = APIRouter()


@router.get("/presets")
async def list_presets(session: Session = Depends(get_session)):
    # Credentials and endpoints never leave the server.
    presets = session.exec(select(Preset).order_by(Preset.name)).all()
    return [
        {
            "id": p.id,
            "name": p.name,
            "description": p.description,
            "icon": p.icon,
            "model_id": p.model_id,
        }
        for p in presets
    ]


@router.get("/usage")
async def my_usage(user_id: str = Depends(get_current_user), session: Session = Depends(get_session)):
    counters = session.exec(select(UsageCounter).where(UsageCounter.user_id == user_id)).all()
    return {c.preset_id: c.request_count for c in counters}
