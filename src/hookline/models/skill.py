"""Skill models for tiered (progressive) content disclosure.

A skill's content is split into nested tiers:

- Tier 0: descriptor, always resident and used for matching
- Tier 1: primary instructions (the SKILL.md body)
- Tier 2: extended methodology
- Tier 3: auxiliary components, loaded one at a time by identifier

Tiers hold references to content, never the content itself.
"""

from __future__ import annotations

import enum
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

DESCRIPTOR_TIER = 0
INSTRUCTIONS_TIER = 1
METHODOLOGY_TIER = 2
COMPONENTS_TIER = 3


class TierKind(str, enum.Enum):
    DESCRIPTOR = "descriptor"
    INSTRUCTIONS = "instructions"
    METHODOLOGY = "methodology"
    COMPONENTS = "components"


@dataclass(frozen=True)
class ContentRef:
    """Reference to a content blob: a file path or inline text."""

    path: Path | None = None
    text: str | None = None

    def __post_init__(self) -> None:
        if (self.path is None) == (self.text is None):
            raise ValueError("ContentRef needs exactly one of path or text")
        if self.path is not None and not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))

    @classmethod
    def inline(cls, text: str) -> ContentRef:
        return cls(text=text)

    @classmethod
    def file(cls, path: str | Path) -> ContentRef:
        return cls(path=Path(path))

    def describe(self) -> str:
        return str(self.path) if self.path is not None else "<inline>"


@dataclass(frozen=True)
class SkillTier:
    """One disclosure tier.  Tier 3 carries no ref; its components do."""

    level: int
    kind: TierKind
    ref: ContentRef | None = None


@dataclass(frozen=True)
class Skill:
    """A modular capability package.

    Attributes:
        id: Skill identifier (the ``name`` frontmatter field).
        descriptor: Short summary, always visible to the matcher.
        triggers: Phrases whose presence in an utterance activates the skill.
        tiers: Ordered disclosure tiers.  Validated by the registry.
        components: Tier 3 resources by identifier.
        source_path: Where the skill was declared, if loaded from disk.
    """

    id: str
    descriptor: str
    triggers: tuple[str, ...] = ()
    tiers: tuple[SkillTier, ...] = ()
    components: Mapping[str, ContentRef] = field(default_factory=dict)
    source_path: Path | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.triggers, tuple):
            object.__setattr__(self, "triggers", tuple(self.triggers))
        if not isinstance(self.tiers, tuple):
            object.__setattr__(self, "tiers", tuple(self.tiers))
        if not self.tiers:
            object.__setattr__(
                self,
                "tiers",
                (SkillTier(DESCRIPTOR_TIER, TierKind.DESCRIPTOR, ContentRef.inline(self.descriptor)),),
            )
        object.__setattr__(
            self, "components", types.MappingProxyType(dict(self.components))
        )

    @property
    def max_tier(self) -> int:
        return max(t.level for t in self.tiers)

    def tier(self, level: int) -> SkillTier | None:
        for t in self.tiers:
            if t.level == level:
                return t
        return None


@dataclass(frozen=True)
class TierContent:
    """Materialized content for one tier (or one Tier 3 component)."""

    skill_id: str
    tier: int
    text: str
    token_count: int = 0
    component_id: str | None = None


@dataclass(frozen=True)
class ActivationRecord:
    """Records that a skill tier was loaded in the current session."""

    skill_id: str
    tier: int
    timestamp: datetime
    token_count: int = 0
