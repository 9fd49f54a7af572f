"""Tests for lifecycle event models.

Tests LifecycleEventKind name resolution and the immutable Event value.
"""

from __future__ import annotations

import pytest

from hookline.exceptions import UnknownEventKindError
from hookline.models.event import Event, LifecycleEventKind


class TestLifecycleEventKind:
    """Tests for resolving event kinds from wire names."""

    def test_six_kinds(self) -> None:
        assert [k.value for k in LifecycleEventKind] == [
            "SessionStart",
            "UserPromptSubmit",
            "PreToolUse",
            "PostToolUse",
            "SessionEnd",
            "PreCompact",
        ]

    @pytest.mark.parametrize(
        "name",
        ["SessionStart", "sessionstart", "SESSION_START", "session-start", "session_start"],
    )
    def test_parse_accepts_spellings(self, name: str) -> None:
        assert LifecycleEventKind.parse(name) is LifecycleEventKind.SESSION_START

    def test_parse_member_is_identity(self) -> None:
        kind = LifecycleEventKind.PRE_COMPACT
        assert LifecycleEventKind.parse(kind) is kind

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(UnknownEventKindError, match="Notification"):
            LifecycleEventKind.parse("Notification")


class TestEvent:
    """Tests for the Event value object."""

    def test_kind_coerced_from_string(self) -> None:
        event = Event(kind="UserPromptSubmit", payload={"prompt": "hi"})
        assert event.kind is LifecycleEventKind.USER_PROMPT_SUBMIT

    def test_payload_is_read_only(self) -> None:
        payload = {"prompt": "hi"}
        event = Event(kind=LifecycleEventKind.USER_PROMPT_SUBMIT, payload=payload)
        with pytest.raises(TypeError):
            event.payload["prompt"] = "changed"  # type: ignore[index]
        payload["prompt"] = "changed"
        assert event.payload["prompt"] == "hi"

    def test_prompt_property(self) -> None:
        assert Event(kind="UserPromptSubmit", payload={"prompt": "go"}).prompt == "go"
        assert Event(kind="UserPromptSubmit", payload={"prompt": 3}).prompt is None
        assert Event(kind="SessionStart").prompt is None

    def test_to_wire(self) -> None:
        event = Event(kind="PreToolUse", payload={"tool_name": "Bash"})
        wire = event.to_wire("sess-1")
        assert wire["tool_name"] == "Bash"
        assert wire["hook_event_name"] == "PreToolUse"
        assert wire["session_id"] == "sess-1"
        assert wire["timestamp"] == event.timestamp.isoformat()

    def test_timestamp_is_utc(self) -> None:
        assert Event(kind="SessionStart").timestamp.tzinfo is not None
