from app.models.conversation import ChatMessage, Conversation
from app.models.preset import Preset, UsageCounter

__all__ = ["ChatMessage", "Conversation", "Preset", "UsageCounter"]
