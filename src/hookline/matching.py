"""Matcher: turns events and utterances into execution/activation plans.

Lifecycle events map to hooks by pure lookup.  Utterances map to skills by
case-insensitive containment: a skill is a candidate when any trigger
phrase occurs in the utterance, or any descriptor token occurs in it as a
word.  Every candidate activates; there is no scoring and no winner.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from hookline.models.event import Event

if TYPE_CHECKING:
    from hookline.models.hooks import HookRegistration
    from hookline.models.skill import Skill
    from hookline.registry import Registry

logger = logging.getLogger(__name__)

REGEX_TRIGGER_PREFIX = "re:"
MIN_DESCRIPTOR_TOKEN_LEN = 4

_WORD_RE = re.compile(r"[\w][\w'-]*", re.UNICODE)

# Words too common in skill descriptors to signal intent on their own.
DESCRIPTOR_STOPWORDS = frozenset({
    "about", "also", "another", "asks", "based", "been", "both", "does",
    "each", "from", "have", "help", "helps", "into", "just", "like", "make",
    "more", "most", "must", "need", "needs", "only", "other", "over",
    "said", "says", "should", "skill", "some", "such", "than", "that",
    "their", "them", "then", "there", "these", "they", "this", "those",
    "through", "used", "uses", "using", "very", "want", "wants", "what",
    "when", "where", "which", "while", "will", "with", "within", "would",
    "your", "user", "users",
})


@dataclass(frozen=True)
class HookPlan:
    """Ordered hooks to run for one event."""

    event: Event
    hooks: tuple[HookRegistration, ...]

    def __len__(self) -> int:
        return len(self.hooks)

    @property
    def hook_ids(self) -> list[str]:
        return [h.id for h in self.hooks]


@dataclass(frozen=True)
class SkillMatch:
    """A skill selected for activation and the phrases that selected it."""

    skill: Skill
    matched: tuple[str, ...]

    @property
    def skill_id(self) -> str:
        return self.skill.id


@dataclass(frozen=True)
class ActivationPlan:
    """Skills to activate for one utterance, in registry declaration order."""

    utterance: str
    matches: tuple[SkillMatch, ...]

    def __len__(self) -> int:
        return len(self.matches)

    def __bool__(self) -> bool:
        return bool(self.matches)

    @property
    def skill_ids(self) -> list[str]:
        return [m.skill_id for m in self.matches]


@lru_cache(maxsize=256)
def _compile_trigger(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def descriptor_tokens(descriptor: str) -> frozenset[str]:
    """Casefolded descriptor words eligible for matching."""
    return frozenset(
        w for w in (m.group(0).casefold() for m in _WORD_RE.finditer(descriptor))
        if len(w) >= MIN_DESCRIPTOR_TOKEN_LEN and w not in DESCRIPTOR_STOPWORDS
    )


def match_skill(skill: Skill, utterance: str) -> tuple[str, ...]:
    """Return the triggers/descriptor tokens of *skill* found in *utterance*.

    An empty tuple means the skill does not match.
    """
    folded = utterance.casefold()
    matched: list[str] = []
    for trigger in skill.triggers:
        if trigger.startswith(REGEX_TRIGGER_PREFIX):
            if _compile_trigger(trigger[len(REGEX_TRIGGER_PREFIX):]).search(utterance):
                matched.append(trigger)
        elif trigger and trigger.casefold() in folded:
            matched.append(trigger)

    words = {m.group(0) for m in _WORD_RE.finditer(folded)}
    matched.extend(sorted(descriptor_tokens(skill.descriptor) & words))
    return tuple(matched)


def skill_matches(skill: Skill, utterance: str) -> bool:
    return bool(match_skill(skill, utterance))


class Matcher:
    """Builds plans from the (read-only) registry."""

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def plan_for_event(self, event: Event) -> HookPlan:
        """Hooks registered for ``event.kind``, verbatim and in total order."""
        return HookPlan(event=event, hooks=self._registry.hooks_for(event.kind))

    def plan_for_utterance(self, utterance: str) -> ActivationPlan:
        """Every skill with at least one matching trigger or descriptor token."""
        matches = []
        for skill in self._registry.skills:
            matched = match_skill(skill, utterance)
            if matched:
                matches.append(SkillMatch(skill=skill, matched=matched))
        logger.debug(
            "Utterance matched %d skill(s): %s",
            len(matches), [m.skill_id for m in matches],
        )
        return ActivationPlan(utterance=utterance, matches=tuple(matches))
