"""Hook registration and execution result models."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from hookline.models.event import LifecycleEventKind

DEFAULT_TIMEOUT_MS = 30_000


class ExecutionStatus(str, enum.Enum):
    """Outcome of one hook run."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"


class HookErrorKind(str, enum.Enum):
    """Why a hook run did not succeed."""

    HOOK_UNAVAILABLE = "hook_unavailable"
    EXIT_STATUS = "exit_status"
    ERROR_MARKER = "error_marker"
    TIMED_OUT = "timed_out"
    INVOKER_ERROR = "invoker_error"
    KIND_MISMATCH = "kind_mismatch"


@dataclass(frozen=True)
class HookRegistration:
    """A hook bound to exactly one lifecycle event kind.

    Attributes:
        id: Hook identifier, unique per event kind.
        event_kind: The kind of event this hook answers.
        argv: Discrete invocation arguments; ``argv[0]`` is the executable.
            Never joined into a shell command line.
        order: Sort key within the event kind.  ``None`` means "use
            declaration order".
        timeout_ms: Wall-clock budget for one run.
        declaration_index: Position in declaration order, assigned by the
            registry and used to break ``order`` ties.
    """

    id: str
    event_kind: LifecycleEventKind
    argv: tuple[str, ...]
    order: int | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    declaration_index: int = -1

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_kind", LifecycleEventKind.parse(self.event_kind))
        if not isinstance(self.argv, tuple):
            object.__setattr__(self, "argv", tuple(self.argv))
        if not self.id:
            raise ValueError("Hook id must be non-empty")
        if not self.argv:
            raise ValueError(f"Hook '{self.id}' has an empty argv")
        if self.timeout_ms <= 0:
            raise ValueError(f"Hook '{self.id}' timeout_ms must be positive")

    @property
    def executable(self) -> str:
        return self.argv[0]

    @property
    def sort_key(self) -> tuple[int, int]:
        """Total order key: explicit order first, declaration index on ties."""
        order = self.order if self.order is not None else self.declaration_index
        return (order, self.declaration_index)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one hook invocation.

    ``error`` is set iff ``status`` is not SUCCESS.
    """

    hook_id: str
    status: ExecutionStatus
    output: str = ""
    duration_ms: float = 0.0
    error: HookErrorKind | None = None
    exit_code: int | None = None
    detail: str | None = None

    def __post_init__(self) -> None:
        if (self.status is ExecutionStatus.SUCCESS) != (self.error is None):
            raise ValueError(
                f"ExecutionResult for '{self.hook_id}': error must be set "
                f"iff status is not success (status={self.status.value})"
            )

    @property
    def ok(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS
