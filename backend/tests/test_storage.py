"""Tests for the relay's storage operations."""

import json
from unittest.mock import patch

from sqlmodel import Session, select

from tests.conftest import test_engine
from app.core.database import seed_presets
from app.models.conversation import ChatMessage, Conversation
from app.models.preset import Preset, UsageCounter
from app.services.storage import ChatStore


def _conversation(owner="alice"):
    with Session(test_engine) as session:
        conv = Conversation(owner_id=owner, preset_id="gpt")
        session.add(conv)
        session.commit()
        session.refresh(conv)
        return conv.id


def test_ownership_lookup():
    store = ChatStore(test_engine)
    cid = _conversation("alice")
    assert store.get_owned_conversation(cid, "alice").id == cid
    assert store.get_owned_conversation(cid, "bob") is None
    assert store.get_owned_conversation(9999, "alice") is None


def test_increment_usage_creates_then_increments():
    store = ChatStore(test_engine)
    store.increment_usage("alice", "gpt")
    store.increment_usage("alice", "gpt")
    store.increment_usage("alice", "gemini")
    store.increment_usage("bob", "gpt")

    with Session(test_engine) as session:
        counts = {
            (c.user_id, c.preset_id): c.request_count
            for c in session.exec(select(UsageCounter)).all()
        }
    assert counts == {("alice", "gpt"): 2, ("alice", "gemini"): 1, ("bob", "gpt"): 1}


def test_message_content_round_trips_parts():
    store = ChatStore(test_engine)
    cid = _conversation()
    parts = [{"type": "text", "text": "hi"}, {"type": "image_url", "image_url": {"url": "https://x/a.png"}}]
    store.insert_message(cid, "user", parts)

    with Session(test_engine) as session:
        msg = session.exec(select(ChatMessage).where(ChatMessage.conversation_id == cid)).one()
    assert msg.content == parts


def test_commit_exchange():
    store = ChatStore(test_engine)
    cid = _conversation()
    store.commit_exchange(cid, "alice", "gpt", "answer")

    with Session(test_engine) as session:
        messages = session.exec(select(ChatMessage).where(ChatMessage.conversation_id == cid)).all()
        counter = session.get(UsageCounter, ("alice", "gpt"))
    assert [(m.role, m.content) for m in messages] == [("assistant", "answer")]
    assert counter.request_count == 1


def test_seed_presets_upserts(tmp_path):
    path = tmp_path / "presets.json"
    path.write_text(json.dumps([
        {"id": "gpt", "name": "GPT", "url": "https://a.test", "api_key": "k", "model_id": "gpt-4.1-mini"},
    ]))
    with patch("app.core.database.engine", test_engine):
        seed_presets(path)
        path.write_text(json.dumps([
            {"id": "gpt", "name": "GPT", "url": "https://b.test", "api_key": "k", "model_id": "gpt-4.1"},
        ]))
        assert seed_presets(path) == 1

    with Session(test_engine) as session:
        presets = session.exec(select(Preset)).all()
    assert [(p.id, p.url, p.model_id) for p in presets] == [("gpt", "https://b.test", "gpt-4.1")]
