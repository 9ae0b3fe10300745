"""Tests for the outbound context builder."""

from datetime import datetime, timezone

from app.services.relay.context import augmentation_context, build_context, first_text

NOW = datetime(2026, 10, 19, 14, 30, tzinfo=timezone.utc)


def test_time_context_always_first():
    built = build_context([{"role": "user", "content": "hi"}], now=NOW)
    assert built[0]["role"] == "system"
    assert "Monday, October 19, 2026 14:30" in built[0]["content"]
    assert built[1:] == [{"role": "user", "content": "hi"}]


def test_time_context_uses_configured_timezone():
    built = build_context([{"role": "user", "content": "hi"}], now=NOW, tz="Asia/Shanghai")
    assert "22:30" in built[0]["content"]
    assert "(CST)" in built[0]["content"]


def test_persona_is_second():
    built = build_context([{"role": "user", "content": "hi"}], persona="P", now=NOW)
    assert built[1] == {"role": "system", "content": "P"}


def test_blank_persona_is_omitted():
    built = build_context([{"role": "user", "content": "hi"}], persona="  ", now=NOW)
    assert len(built) == 2


def test_full_ordering_with_augmentation():
    aug = augmentation_context("weather?", "sunny, 20C")
    built = build_context(
        [{"role": "user", "content": "hi"}, {"role": "user", "content": "weather?"}],
        persona="P",
        augmentation=aug,
        now=NOW,
    )
    assert [m["role"] for m in built] == ["system", "system", "user", "system", "user"]
    assert built[1]["content"] == "P"
    assert built[2] == {"role": "user", "content": "hi"}
    assert "sunny, 20C" in built[3]["content"]
    assert built[4] == {"role": "user", "content": "weather?"}


def test_history_keeps_order_and_drops_extra_keys():
    messages = [
        {"role": "user", "content": "a", "id": 1},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c"},
    ]
    built = build_context(messages, now=NOW)
    assert built[1:] == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c"},
    ]


def test_first_text():
    assert first_text("  hello ") == "hello"
    assert first_text([
        {"type": "image_url", "image_url": {"url": "https://x/y.png"}},
        {"type": "text", "text": "first"},
        {"type": "text", "text": "second"},
    ]) == "first"
    assert first_text([{"type": "image_url", "image_url": {"url": "https://x/y.png"}}]) == ""
