"""SessionContext -- per-session activation and execution history.

Created at session start and closed at session end.  Passed explicitly to
the dispatcher and disclosure loader; there is no ambient session.

All mutations are appends serialized by one lock.  Readers take a
:class:`SessionSnapshot`, which is immutable and never reflects a partial
append.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from hookline.exceptions import SessionClosedError
from hookline.models.skill import (
    DESCRIPTOR_TIER,
    ActivationRecord,
    TierContent,
)

if TYPE_CHECKING:
    from hookline.models.event import LifecycleEventKind
    from hookline.models.hooks import ExecutionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchRecord:
    """Results of one dispatched event, in plan order."""

    event_kind: LifecycleEventKind
    timestamp: datetime
    results: tuple[ExecutionResult, ...]


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent point-in-time view of a session."""

    session_id: str
    started_at: datetime
    ended_at: datetime | None
    activations: tuple[ActivationRecord, ...]
    dispatches: tuple[DispatchRecord, ...]
    loaded_tiers: dict[str, int] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return self.ended_at is None

    @property
    def loaded_tokens(self) -> int:
        return sum(r.token_count for r in self.activations)

    @property
    def execution_results(self) -> list[ExecutionResult]:
        return [r for d in self.dispatches for r in d.results]


class SessionContext:
    """Mutable state for one assistant session."""

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self._lock = threading.RLock()
        self._started_at = datetime.now(timezone.utc)
        self._ended_at: datetime | None = None
        self._activations: list[ActivationRecord] = []
        self._activation_keys: set[tuple[str, int]] = set()
        self._dispatches: list[DispatchRecord] = []
        # skill_id -> {tier: content}; Tier 3 components live in _components
        self._content: dict[str, dict[int, TierContent]] = {}
        self._components: dict[tuple[str, str], TierContent] = {}

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def lock(self) -> threading.RLock:
        """Mutation lock; hold it to make check-then-append atomic."""
        return self._lock

    @property
    def closed(self) -> bool:
        return self._ended_at is not None

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    def record_dispatch(
        self, event_kind: LifecycleEventKind, results: Iterable[ExecutionResult]
    ) -> DispatchRecord:
        record = DispatchRecord(
            event_kind=event_kind,
            timestamp=datetime.now(timezone.utc),
            results=tuple(results),
        )
        with self._lock:
            self._check_open()
            self._dispatches.append(record)
        return record

    def record_tier(self, content: TierContent) -> ActivationRecord | None:
        """Store a loaded tier and append its ActivationRecord.

        Returns None (and stores nothing) when the (skill, tier) pair is
        already recorded.
        """
        key = (content.skill_id, content.tier)
        with self._lock:
            self._check_open()
            if key in self._activation_keys:
                return None
            record = ActivationRecord(
                skill_id=content.skill_id,
                tier=content.tier,
                timestamp=datetime.now(timezone.utc),
                token_count=content.token_count,
            )
            self._activation_keys.add(key)
            self._activations.append(record)
            if content.component_id is None:
                self._content.setdefault(content.skill_id, {})[content.tier] = content
        logger.debug("Recorded tier %d of skill %s", content.tier, content.skill_id)
        return record

    def record_component(self, content: TierContent) -> bool:
        """Cache a loaded Tier 3 component.  False if it was already cached."""
        if content.component_id is None:
            raise ValueError("record_component requires a component_id")
        key = (content.skill_id, content.component_id)
        with self._lock:
            self._check_open()
            if key in self._components:
                return False
            self._components[key] = content
            return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def has_tier(self, skill_id: str, tier: int) -> bool:
        with self._lock:
            return (skill_id, tier) in self._activation_keys

    def loaded_tier(self, skill_id: str) -> int | None:
        """Highest recorded tier for a skill, or None if never activated."""
        with self._lock:
            tiers = [t for (s, t) in self._activation_keys if s == skill_id]
        return max(tiers) if tiers else None

    def tier_content(self, skill_id: str, tier: int) -> TierContent | None:
        with self._lock:
            return self._content.get(skill_id, {}).get(tier)

    def component_content(self, skill_id: str, component_id: str) -> TierContent | None:
        with self._lock:
            return self._components.get((skill_id, component_id))

    def loaded_text(self, skill_id: str) -> str:
        """Concatenated text of all loaded tiers above the descriptor."""
        with self._lock:
            tiers = self._content.get(skill_id, {})
            return "\n\n".join(
                tiers[t].text for t in sorted(tiers) if t > DESCRIPTOR_TIER
            )

    def activations(self) -> tuple[ActivationRecord, ...]:
        with self._lock:
            return tuple(self._activations)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            loaded: dict[str, int] = {}
            for skill_id, tier in self._activation_keys:
                loaded[skill_id] = max(tier, loaded.get(skill_id, tier))
            return SessionSnapshot(
                session_id=self._session_id,
                started_at=self._started_at,
                ended_at=self._ended_at,
                activations=tuple(self._activations),
                dispatches=tuple(self._dispatches),
                loaded_tiers=loaded,
            )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> SessionSnapshot:
        """End the session and clear its records.

        Returns the final snapshot taken just before clearing.  Idempotent.
        """
        with self._lock:
            if self._ended_at is None:
                self._ended_at = datetime.now(timezone.utc)
            final = self.snapshot()
            self._activations.clear()
            self._activation_keys.clear()
            self._dispatches.clear()
            self._content.clear()
            self._components.clear()
        logger.info("Session %s ended", self._session_id)
        return final

    def _check_open(self) -> None:
        if self._ended_at is not None:
            raise SessionClosedError(self._session_id)
