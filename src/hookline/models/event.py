"""Lifecycle event models.

Events are produced by the host runtime (or by ``Hookline.fire``) and never
mutated afterwards.
"""

from __future__ import annotations

import enum
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from hookline.exceptions import UnknownEventKindError


class LifecycleEventKind(str, enum.Enum):
    """Fixed set of lifecycle stages emitted by the host runtime."""

    SESSION_START = "SessionStart"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    SESSION_END = "SessionEnd"
    PRE_COMPACT = "PreCompact"

    @classmethod
    def parse(cls, name: str | LifecycleEventKind) -> LifecycleEventKind:
        """Resolve an event kind from its wire name.

        Accepts the canonical name (``"SessionStart"``), the enum member name
        (``"SESSION_START"``) or any casing of either.

        Raises:
            UnknownEventKindError: If *name* is not a lifecycle kind.
        """
        if isinstance(name, cls):
            return name
        folded = str(name).replace("_", "").replace("-", "").casefold()
        for kind in cls:
            if kind.value.casefold() == folded:
                return kind
        raise UnknownEventKindError(str(name))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """A discrete occurrence in an assistant session.

    Attributes:
        kind: Lifecycle stage this event represents.
        payload: Kind-specific data (prompt text, tool name, ...).
            Stored as a read-only mapping.
        timestamp: When the event was created (UTC).
    """

    kind: LifecycleEventKind
    payload: Mapping[str, object] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", LifecycleEventKind.parse(self.kind))
        object.__setattr__(
            self, "payload", types.MappingProxyType(dict(self.payload))
        )

    @property
    def prompt(self) -> str | None:
        """The user's utterance for ``UserPromptSubmit`` events, if present."""
        value = self.payload.get("prompt")
        return value if isinstance(value, str) else None

    def to_wire(self, session_id: str) -> dict:
        """Serialize for a hook's stdin.

        Mirrors the host runtime convention: payload keys at the top level
        plus ``hook_event_name``, ``session_id`` and ``timestamp``.
        """
        data = dict(self.payload)
        data["hook_event_name"] = self.kind.value
        data["session_id"] = session_id
        data["timestamp"] = self.timestamp.isoformat()
        return data
