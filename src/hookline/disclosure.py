"""Disclosure loader: lazy, tier-by-tier materialization of skill content.

Each skill moves through a forward-only state machine within a session::

    NotLoaded -> Tier 0 -> Tier 1 -> Tier 2 -> Tier 3 (components)

A tier can only be loaded once the tier directly below it is loaded.
Loading a tier that is already loaded is a no-op that returns the cached
content.  Tier 3 components are loaded one at a time, by identifier.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hookline.declarations import split_frontmatter
from hookline.engine.tokens import NullTokenCounter
from hookline.exceptions import (
    ContentLoadError,
    DisclosureError,
    TierOrderError,
    UnknownComponentError,
)
from hookline.models.skill import (
    COMPONENTS_TIER,
    DESCRIPTOR_TIER,
    INSTRUCTIONS_TIER,
    METHODOLOGY_TIER,
    ContentRef,
    Skill,
    TierContent,
)

if TYPE_CHECKING:
    from hookline.matching import ActivationPlan
    from hookline.protocols import ContentReader, TokenCounter
    from hookline.registry import Registry
    from hookline.session import SessionContext

logger = logging.getLogger(__name__)


class FileContentReader:
    """Reads content blobs from disk as strict UTF-8.

    Markdown frontmatter is stripped, so a SKILL.md reads as its body.

    Implements the ContentReader protocol.
    """

    def read(self, ref: ContentRef) -> str:
        if ref.text is not None:
            return ref.text
        text = ref.path.read_text(encoding="utf-8")
        if ref.path.suffix.lower() == ".md":
            _, text = split_frontmatter(text)
        return text


@dataclass(frozen=True)
class SkillState:
    """Where a skill is in its disclosure state machine."""

    skill_id: str
    loaded_tier: int | None  # None = NotLoaded
    max_tier: int

    @property
    def loaded(self) -> bool:
        return self.loaded_tier is not None

    @property
    def next_tier(self) -> int | None:
        if self.loaded_tier is None:
            return DESCRIPTOR_TIER
        if self.loaded_tier >= self.max_tier:
            return None
        return self.loaded_tier + 1


@dataclass(frozen=True)
class SkillActivation:
    """Result of activating one skill."""

    skill_id: str
    contents: tuple[TierContent, ...]
    newly_loaded: bool

    @property
    def text(self) -> str:
        """Loaded instructions, or the descriptor if the skill has none."""
        body = [c.text for c in self.contents if c.tier > DESCRIPTOR_TIER]
        if body:
            return "\n\n".join(body)
        return self.contents[0].text if self.contents else ""


@dataclass
class ActivationOutcome:
    """Per-skill results of activating a whole plan."""

    activations: list[SkillActivation] = field(default_factory=list)
    failures: dict[str, DisclosureError] = field(default_factory=dict)

    @property
    def activated_ids(self) -> list[str]:
        return [a.skill_id for a in self.activations]

    @property
    def ok(self) -> bool:
        return not self.failures


class DisclosureLoader:
    """Materializes skill tiers into a :class:`SessionContext` on demand.

    Args:
        registry: Source of skill definitions (read-only).
        reader: Reads content blobs.  :class:`FileContentReader` by default.
        token_counter: Measures loaded content.  Counting disabled by default.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        reader: ContentReader | None = None,
        token_counter: TokenCounter | None = None,
    ) -> None:
        self._registry = registry
        self._reader = reader or FileContentReader()
        self._token_counter = token_counter or NullTokenCounter()

    def state(self, context: SessionContext, skill_id: str) -> SkillState:
        skill = self._registry.get_skill(skill_id)
        return SkillState(
            skill_id=skill_id,
            loaded_tier=context.loaded_tier(skill_id),
            max_tier=skill.max_tier,
        )

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def activate(self, context: SessionContext, skill: Skill | str) -> SkillActivation:
        """Load Tier 0 and Tier 1 of *skill*; no-op if already loaded.

        Raises:
            ContentLoadError: If the Tier 1 blob is missing or malformed.
        """
        if isinstance(skill, str):
            skill = self._registry.get_skill(skill)

        with context.lock:
            newly = not context.has_tier(skill.id, DESCRIPTOR_TIER)
            contents = [self._load(context, skill, DESCRIPTOR_TIER)]
            if skill.tier(INSTRUCTIONS_TIER) is not None:
                newly = newly or not context.has_tier(skill.id, INSTRUCTIONS_TIER)
                contents.append(self._load(context, skill, INSTRUCTIONS_TIER))

        if newly:
            logger.info("Activated skill %s", skill.id)
        return SkillActivation(skill_id=skill.id, contents=tuple(contents), newly_loaded=newly)

    def activate_plan(self, context: SessionContext, plan: ActivationPlan) -> ActivationOutcome:
        """Activate every skill in *plan*; one skill's failure never blocks another."""
        outcome = ActivationOutcome()
        for match in plan.matches:
            try:
                outcome.activations.append(self.activate(context, match.skill))
            except DisclosureError as exc:
                logger.warning("Skill %s failed to activate: %s", match.skill_id, exc)
                outcome.failures[match.skill_id] = exc
        return outcome

    # ------------------------------------------------------------------
    # Follow-on expansion
    # ------------------------------------------------------------------

    def expand(
        self,
        context: SessionContext,
        skill_id: str,
        tier: int,
        *,
        component_id: str | None = None,
    ) -> TierContent:
        """Load one tier of an activated skill.

        Tier 3 requires *component_id*; see :meth:`load_component`.

        Raises:
            TierOrderError: If the tier below *tier* is not loaded yet.
            UnknownComponentError: If *component_id* is not declared.
            ContentLoadError: If the blob is missing or malformed.
        """
        skill = self._registry.get_skill(skill_id)
        if tier == COMPONENTS_TIER:
            if component_id is None:
                raise ValueError("Tier 3 is loaded per component; pass component_id")
            return self.load_component(context, skill_id, component_id)
        with context.lock:
            return self._load(context, skill, tier)

    def load_component(
        self, context: SessionContext, skill_id: str, component_id: str
    ) -> TierContent:
        """Load one Tier 3 component.  Requires Tier 2 to be loaded."""
        skill = self._registry.get_skill(skill_id)
        ref = skill.components.get(component_id)
        if ref is None:
            raise UnknownComponentError(skill_id, component_id)

        with context.lock:
            cached = context.component_content(skill_id, component_id)
            if cached is not None:
                return cached
            self._check_order(context, skill, COMPONENTS_TIER)
            content = self._read(skill, COMPONENTS_TIER, ref, component_id=component_id)
            context.record_component(content)
            context.record_tier(content)
        logger.debug("Loaded component %s of skill %s", component_id, skill_id)
        return content

    def follow_references(self, context: SessionContext, skill_id: str) -> list[TierContent]:
        """Load whatever the already-loaded content of *skill_id* references.

        Tier 2 is loaded when loaded text names the methodology document.
        Components are loaded when loaded text names their id or file.
        Repeats until nothing new is referenced.

        Returns:
            Newly loaded content, in load order.
        """
        skill = self._registry.get_skill(skill_id)
        loaded: list[TierContent] = []
        while True:
            new = self._next_reference(context, skill)
            if new is None:
                return loaded
            loaded.append(new)

    def _next_reference(self, context: SessionContext, skill: Skill) -> TierContent | None:
        current = context.loaded_tier(skill.id)
        if current is None or current < INSTRUCTIONS_TIER:
            return None
        text = context.loaded_text(skill.id) + "\n" + "\n".join(
            c.text for cid in skill.components
            if (c := context.component_content(skill.id, cid)) is not None
        )

        methodology = skill.tier(METHODOLOGY_TIER)
        if current == INSTRUCTIONS_TIER:
            if methodology is not None and _mentions(text, _ref_names(methodology.ref)):
                return self.expand(context, skill.id, METHODOLOGY_TIER)
            return None

        for component_id, ref in skill.components.items():
            if context.component_content(skill.id, component_id) is not None:
                continue
            if _mentions(text, (component_id, *_ref_names(ref))):
                return self.load_component(context, skill.id, component_id)
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_order(self, context: SessionContext, skill: Skill, tier: int) -> None:
        if tier == DESCRIPTOR_TIER:
            return
        if not context.has_tier(skill.id, tier - 1):
            loaded = context.loaded_tier(skill.id)
            raise TierOrderError(skill.id, tier, -1 if loaded is None else loaded)

    def _load(self, context: SessionContext, skill: Skill, tier: int) -> TierContent:
        """Load one non-component tier.  Caller holds ``context.lock``."""
        cached = context.tier_content(skill.id, tier)
        if cached is not None:
            return cached
        spec = skill.tier(tier)
        if spec is None or tier == COMPONENTS_TIER:
            raise ContentLoadError(skill.id, tier, "skill declares no such tier")
        self._check_order(context, skill, tier)
        ref = spec.ref if spec.ref is not None else ContentRef.inline(skill.descriptor)
        content = self._read(skill, tier, ref)
        context.record_tier(content)
        return content

    def _read(
        self,
        skill: Skill,
        tier: int,
        ref: ContentRef,
        *,
        component_id: str | None = None,
    ) -> TierContent:
        try:
            text = self._reader.read(ref)
        except FileNotFoundError as exc:
            raise ContentLoadError(skill.id, tier, f"missing blob {ref.describe()}") from exc
        except UnicodeDecodeError as exc:
            raise ContentLoadError(skill.id, tier, f"undecodable blob {ref.describe()}") from exc
        except OSError as exc:
            raise ContentLoadError(skill.id, tier, f"{ref.describe()}: {exc}") from exc
        if tier > DESCRIPTOR_TIER and not text.strip():
            raise ContentLoadError(skill.id, tier, f"empty blob {ref.describe()}")
        return TierContent(
            skill_id=skill.id,
            tier=tier,
            text=text,
            token_count=self._token_counter.count_text(text),
            component_id=component_id,
        )


def _ref_names(ref: ContentRef | None) -> tuple[str, ...]:
    if ref is None or ref.path is None:
        return ()
    return (ref.path.name,)


def _mentions(text: str, names: tuple[str, ...]) -> bool:
    for name in names:
        if re.search(rf"(?<![\w.-]){re.escape(name)}(?![\w-])", text, re.IGNORECASE):
            return True
    return False
