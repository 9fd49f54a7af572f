"""Tests for the Registry: hook ordering, skill validation and freezing."""

from __future__ import annotations

import pytest

from hookline import (
    ContentRef,
    DuplicateHookError,
    DuplicateSkillError,
    InvalidTierOrderError,
    LifecycleEventKind,
    Registry,
    RegistryFrozenError,
    Skill,
    SkillNotFoundError,
    SkillTier,
    TierKind,
)
from tests.conftest import make_hook


def _skill(skill_id: str, descriptor: str = "does things", triggers=(), levels=(0,)) -> Skill:
    kinds = list(TierKind)
    return Skill(
        id=skill_id,
        descriptor=descriptor,
        triggers=tuple(triggers),
        tiers=tuple(
            SkillTier(level, kinds[min(level, 3)], ContentRef.inline(f"tier {level}"))
            for level in levels
        ),
    )


# ===========================================================================
# Hooks
# ===========================================================================


class TestHookRegistration:

    def test_declaration_index_assigned(self, registry: Registry) -> None:
        first = registry.register_hook(make_hook("a"))
        second = registry.register_hook(make_hook("b", LifecycleEventKind.SESSION_END))
        assert first.declaration_index == 0
        assert second.declaration_index == 1

    def test_order_then_declaration(self, registry: Registry) -> None:
        registry.register_hook(make_hook("late", order=2))
        registry.register_hook(make_hook("early", order=1))
        registry.register_hook(make_hook("tie", order=2))
        ids = [h.id for h in registry.hooks_for(LifecycleEventKind.SESSION_START)]
        assert ids == ["early", "late", "tie"]

    def test_declaration_order_without_explicit_order(self, registry: Registry) -> None:
        for hook_id in ("c", "a", "b"):
            registry.register_hook(make_hook(hook_id))
        assert [h.id for h in registry.hooks_for("SessionStart")] == ["c", "a", "b"]

    def test_order_is_stable_across_lookups(self, registry: Registry) -> None:
        registry.register_hook(make_hook("A", order=1))
        registry.register_hook(make_hook("B", order=2))
        first = registry.hooks_for("SessionStart")
        assert all(registry.hooks_for("SessionStart") == first for _ in range(5))

    def test_duplicate_id_same_kind_rejected(self, registry: Registry) -> None:
        registry.register_hook(make_hook("a"))
        with pytest.raises(DuplicateHookError) as exc_info:
            registry.register_hook(make_hook("a"))
        assert exc_info.value.hook_id == "a"
        assert exc_info.value.event_kind == "SessionStart"

    def test_same_id_different_kinds_allowed(self, registry: Registry) -> None:
        registry.register_hook(make_hook("notify", LifecycleEventKind.SESSION_START))
        registry.register_hook(make_hook("notify", LifecycleEventKind.SESSION_END))
        assert registry.hook_count == 2
        assert registry.hook_kinds == [
            LifecycleEventKind.SESSION_START,
            LifecycleEventKind.SESSION_END,
        ]

    def test_kind_without_hooks_is_empty(self, registry: Registry) -> None:
        assert registry.hooks_for(LifecycleEventKind.PRE_COMPACT) == ()


# ===========================================================================
# Skills
# ===========================================================================


class TestSkillRegistration:

    def test_declaration_order(self, registry: Registry) -> None:
        for skill_id in ("zeta", "alpha", "mid"):
            registry.register_skill(_skill(skill_id))
        assert [s.id for s in registry.skills] == ["zeta", "alpha", "mid"]

    def test_duplicate_rejected(self, registry: Registry) -> None:
        registry.register_skill(_skill("fabric"))
        with pytest.raises(DuplicateSkillError, match="fabric"):
            registry.register_skill(_skill("fabric"))

    @pytest.mark.parametrize("levels", [(0, 2), (1,), (0, 1, 3), (1, 0)])
    def test_non_contiguous_tiers_rejected(self, registry: Registry, levels) -> None:
        with pytest.raises(InvalidTierOrderError) as exc_info:
            registry.register_skill(_skill("broken", levels=levels))
        assert exc_info.value.levels == list(levels)
        assert not registry.has_skill("broken")

    def test_full_tier_chain_accepted(self, registry: Registry) -> None:
        registry.register_skill(_skill("deep", levels=(0, 1, 2, 3)))
        assert registry.get_skill("deep").max_tier == 3

    def test_get_missing_skill(self, registry: Registry) -> None:
        with pytest.raises(SkillNotFoundError):
            registry.get_skill("nope")

    def test_skills_by_trigger(self, registry: Registry) -> None:
        registry.register_skill(_skill("research", descriptor="xyz", triggers=["research"]))
        registry.register_skill(_skill("fabric", descriptor="xyz", triggers=["pattern"]))
        assert registry.skills_by_trigger("Do some RESEARCH") == {"research"}
        assert registry.skills_by_trigger("nothing here") == set()


# ===========================================================================
# Freezing
# ===========================================================================


class TestFreeze:

    def test_frozen_rejects_hooks(self, registry: Registry) -> None:
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register_hook(make_hook("a"))

    def test_frozen_rejects_skills(self, registry: Registry) -> None:
        registry.register_skill(_skill("a"))
        registry.freeze()
        with pytest.raises(RegistryFrozenError):
            registry.register_skill(_skill("b"))
        assert [s.id for s in registry.skills] == ["a"]

    def test_skill_map_is_read_only(self, registry: Registry) -> None:
        registry.register_skill(_skill("a"))
        with pytest.raises(TypeError):
            registry.skill_map["b"] = _skill("b")  # type: ignore[index]
