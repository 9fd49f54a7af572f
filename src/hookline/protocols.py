"""Protocol definitions for Hookline.

Defines pluggable interfaces (TokenCounter, Invoker, ContentReader) and the
frozen InvocationOutcome dataclass returned by invokers.

No subprocess or filesystem access in this module -- pure domain protocols.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from hookline.models.skill import ContentRef


@runtime_checkable
class TokenCounter(Protocol):
    """Counts tokens in loaded skill content."""

    def count_text(self, text: str) -> int: ...


@dataclass(frozen=True)
class InvocationOutcome:
    """What an external unit did when invoked.

    Attributes:
        exit_code: Process exit status.  Negative values mean the process
            was terminated by that signal.  None when the process never
            started or was killed on timeout.
        stdout: Captured standard output.
        stderr: Captured standard error.
        timed_out: True if the invoker killed the unit on timeout.
        duration_ms: Wall-clock run time.
    """

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    duration_ms: float = 0.0


@runtime_checkable
class Invoker(Protocol):
    """Capability to run one external unit with discrete arguments.

    Implementations must never route *argv* through a shell.  They raise
    ``FileNotFoundError`` or ``PermissionError`` when the executable cannot
    be located or started; every other outcome is an InvocationOutcome.
    """

    def invoke(
        self,
        argv: Sequence[str],
        *,
        stdin: str,
        env: Mapping[str, str],
        timeout_s: float,
    ) -> InvocationOutcome: ...


@runtime_checkable
class ContentReader(Protocol):
    """Reads the blob behind a ContentRef.

    Raises OSError or UnicodeDecodeError on failure; the disclosure loader
    converts those into ContentLoadError.
    """

    def read(self, ref: ContentRef) -> str: ...
