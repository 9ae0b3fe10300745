"""Upstream model presets and per-user usage counters."""

from typing import Optional

from sqlmodel import Field, SQLModel


class Preset(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    description: str = Field(default="Custom Model")
    icon: str = Field(default="⚡")
    url: str  # bare host or full completions endpoint
    api_key: str
    model_id: str
    system_prompt: Optional[str] = None


class UsageCounter(SQLModel, table=True):
    user_id: str = Field(primary_key=True)
    preset_id: str = Field(primary_key=True)
    request_count: int = Field(default=0)
