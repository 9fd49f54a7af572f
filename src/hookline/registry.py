"""Registry of hooks and skills for one session.

Built once from declarations at session start, then frozen.  After
``freeze()`` the registry is read-only and safe to read from any thread
without locking.
"""

from __future__ import annotations

import dataclasses
from types import MappingProxyType

from hookline.exceptions import (
    DuplicateHookError,
    DuplicateSkillError,
    InvalidTierOrderError,
    RegistryFrozenError,
    SkillNotFoundError,
)
from hookline.matching import skill_matches
from hookline.models.event import LifecycleEventKind
from hookline.models.hooks import HookRegistration
from hookline.models.skill import Skill


class Registry:
    """Authoritative source of hook and skill definitions."""

    def __init__(self) -> None:
        self._hooks: dict[LifecycleEventKind, list[HookRegistration]] = {}
        self._ordered: dict[LifecycleEventKind, tuple[HookRegistration, ...]] = {}
        self._skills: dict[str, Skill] = {}
        self._declaration_count = 0
        self._frozen = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_hook(self, hook: HookRegistration) -> HookRegistration:
        """Register a hook for its event kind.

        The registry assigns the hook's declaration index, which breaks ties
        between equal ``order`` values.

        Raises:
            DuplicateHookError: If the id is already registered for the kind.
            RegistryFrozenError: If the registry was frozen.

        Returns:
            The registration as stored (with its declaration index).
        """
        self._check_mutable()
        bucket = self._hooks.setdefault(hook.event_kind, [])
        if any(h.id == hook.id for h in bucket):
            raise DuplicateHookError(hook.id, hook.event_kind.value)

        stored = dataclasses.replace(hook, declaration_index=self._declaration_count)
        self._declaration_count += 1
        bucket.append(stored)
        self._ordered[hook.event_kind] = tuple(sorted(bucket, key=lambda h: h.sort_key))
        return stored

    def register_skill(self, skill: Skill) -> None:
        """Register a skill.

        Raises:
            DuplicateSkillError: If the id is already registered.
            InvalidTierOrderError: If tier levels are not 0..N without gaps.
            RegistryFrozenError: If the registry was frozen.
        """
        self._check_mutable()
        if skill.id in self._skills:
            raise DuplicateSkillError(skill.id)
        levels = [t.level for t in skill.tiers]
        if levels != list(range(len(levels))):
            raise InvalidTierOrderError(skill.id, levels)
        self._skills[skill.id] = skill

    def freeze(self) -> None:
        """Make the registry read-only for the rest of the session."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def hooks_for(self, kind: LifecycleEventKind | str) -> tuple[HookRegistration, ...]:
        """Hooks for *kind* in total order; empty if none are registered."""
        return self._ordered.get(LifecycleEventKind.parse(kind), ())

    @property
    def hook_kinds(self) -> list[LifecycleEventKind]:
        """Event kinds with at least one hook, in enum order."""
        return [k for k in LifecycleEventKind if self._ordered.get(k)]

    @property
    def hook_count(self) -> int:
        return sum(len(v) for v in self._ordered.values())

    @property
    def skills(self) -> tuple[Skill, ...]:
        """All skills in declaration order."""
        return tuple(self._skills.values())

    @property
    def skill_map(self) -> MappingProxyType:
        return MappingProxyType(self._skills)

    def get_skill(self, skill_id: str) -> Skill:
        """Look up a skill by id.

        Raises:
            SkillNotFoundError: If no such skill is registered.
        """
        skill = self._skills.get(skill_id)
        if skill is None:
            raise SkillNotFoundError(skill_id)
        return skill

    def has_skill(self, skill_id: str) -> bool:
        return skill_id in self._skills

    def skills_by_trigger(self, utterance: str) -> set[str]:
        """Ids of skills whose triggers or descriptor match *utterance*."""
        return {s.id for s in self._skills.values() if skill_matches(s, utterance)}
