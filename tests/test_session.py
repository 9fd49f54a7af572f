"""Tests for SessionContext: append-only records, snapshots and teardown."""

from __future__ import annotations

import threading

import pytest

from hookline import (
    ExecutionResult,
    ExecutionStatus,
    LifecycleEventKind,
    SessionClosedError,
    SessionContext,
    TierContent,
)


def _content(skill_id: str, tier: int, text: str = "text", tokens: int = 0, component_id=None):
    return TierContent(
        skill_id=skill_id, tier=tier, text=text, token_count=tokens, component_id=component_id
    )


def _ok(hook_id: str) -> ExecutionResult:
    return ExecutionResult(hook_id=hook_id, status=ExecutionStatus.SUCCESS)


class TestRecordTier:

    def test_records_once_per_pair(self, context: SessionContext) -> None:
        first = context.record_tier(_content("fabric", 0))
        again = context.record_tier(_content("fabric", 0, text="other"))
        assert first is not None
        assert again is None
        assert len(context.activations()) == 1
        assert context.tier_content("fabric", 0).text == "text"

    def test_loaded_tier_tracks_highest(self, context: SessionContext) -> None:
        assert context.loaded_tier("fabric") is None
        context.record_tier(_content("fabric", 0))
        context.record_tier(_content("fabric", 1))
        assert context.loaded_tier("fabric") == 1
        assert context.has_tier("fabric", 1)
        assert not context.has_tier("fabric", 2)

    def test_loaded_text_skips_descriptor(self, context: SessionContext) -> None:
        context.record_tier(_content("s", 0, text="descriptor"))
        context.record_tier(_content("s", 2, text="method"))
        context.record_tier(_content("s", 1, text="body"))
        assert context.loaded_text("s") == "body\n\nmethod"

    def test_component_content_not_stored_as_tier(self, context: SessionContext) -> None:
        comp = _content("s", 3, text="comp", component_id="table")
        assert context.record_component(comp) is True
        assert context.record_component(comp) is False
        context.record_tier(comp)
        assert context.tier_content("s", 3) is None
        assert context.component_content("s", "table") == comp
        assert context.has_tier("s", 3)

    def test_component_requires_id(self, context: SessionContext) -> None:
        with pytest.raises(ValueError):
            context.record_component(_content("s", 3))


class TestSnapshot:

    def test_snapshot_is_consistent_copy(self, context: SessionContext) -> None:
        context.record_tier(_content("a", 0, tokens=5))
        context.record_tier(_content("a", 1, tokens=7))
        context.record_dispatch(LifecycleEventKind.SESSION_START, [_ok("h1"), _ok("h2")])

        snap = context.snapshot()
        context.record_tier(_content("b", 0))

        assert snap.active
        assert snap.session_id == "test-session"
        assert [(r.skill_id, r.tier) for r in snap.activations] == [("a", 0), ("a", 1)]
        assert snap.loaded_tiers == {"a": 1}
        assert snap.loaded_tokens == 12
        assert [r.hook_id for r in snap.execution_results] == ["h1", "h2"]

    def test_concurrent_appends_are_not_lost(self, context: SessionContext) -> None:
        def worker(n: int) -> None:
            for tier in range(4):
                context.record_tier(_content(f"skill-{n}", tier))
            context.record_dispatch(LifecycleEventKind.PRE_TOOL_USE, [_ok(f"h{n}")])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snap = context.snapshot()
        assert len(snap.activations) == 64
        assert len(snap.dispatches) == 16
        assert all(tier == 3 for tier in snap.loaded_tiers.values())


class TestClose:

    def test_close_returns_final_snapshot_and_clears(self) -> None:
        context = SessionContext("s1")
        context.record_tier(_content("a", 0))
        final = context.close()

        assert not final.active
        assert len(final.activations) == 1
        assert context.closed
        assert context.activations() == ()
        assert context.loaded_tier("a") is None

    def test_appends_after_close_raise(self) -> None:
        context = SessionContext("s1")
        context.close()
        with pytest.raises(SessionClosedError):
            context.record_tier(_content("a", 0))
        with pytest.raises(SessionClosedError):
            context.record_dispatch(LifecycleEventKind.SESSION_END, [])

    def test_close_is_idempotent(self) -> None:
        context = SessionContext("s1")
        first = context.close()
        second = context.close()
        assert second.ended_at == first.ended_at
