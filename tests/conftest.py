"""Shared test fixtures for Hookline.

Provides a scripted fake invoker, helpers that write real hook scripts and
skill packages to ``tmp_path``, and ready-made registries.
"""

from __future__ import annotations

import json
import os
import signal
import sys
import textwrap
import threading
import time
from dataclasses import dataclass
from pathlib import Path

import pytest

from hookline import (
    HookRegistration,
    HooklineConfig,
    LifecycleEventKind,
    Registry,
    SessionContext,
)
from hookline.protocols import InvocationOutcome


# ------------------------------------------------------------------
# Fake invoker
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Script:
    """Scripted behaviour for one fake executable."""

    delay_s: float = 0.0
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    missing: bool = False


class FakeInvoker:
    """Invoker that plays back scripted outcomes keyed by ``argv[0]``.

    Unknown executables behave as missing.  Delays longer than the timeout
    are cut at the timeout and reported as timed out, like the real invoker.
    """

    def __init__(self, scripts: dict[str, Script] | None = None) -> None:
        self.scripts = dict(scripts or {})
        self.calls: list[dict] = []
        self.completed: list[str] = []
        self._lock = threading.Lock()

    def invoke(self, argv, *, stdin, env, timeout_s):
        with self._lock:
            self.calls.append({"argv": list(argv), "stdin": stdin, "env": dict(env)})
        script = self.scripts.get(argv[0])
        if script is None or script.missing:
            raise FileNotFoundError(2, "No such file or directory", argv[0])

        if script.delay_s > timeout_s:
            time.sleep(timeout_s)
            return InvocationOutcome(exit_code=None, timed_out=True, duration_ms=timeout_s * 1000)
        time.sleep(script.delay_s)
        with self._lock:
            self.completed.append(argv[0])
        return InvocationOutcome(
            exit_code=script.exit_code,
            stdout=script.stdout,
            stderr=script.stderr,
            duration_ms=script.delay_s * 1000,
        )

    def called(self) -> list[str]:
        with self._lock:
            return [c["argv"][0] for c in self.calls]


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    return FakeInvoker()


# ------------------------------------------------------------------
# Registries and sessions
# ------------------------------------------------------------------


def make_hook(
    hook_id: str,
    kind: LifecycleEventKind | str = LifecycleEventKind.SESSION_START,
    *,
    argv: tuple[str, ...] | None = None,
    order: int | None = None,
    timeout_ms: int = 2000,
) -> HookRegistration:
    """A hook whose executable name equals its id unless argv is given."""
    return HookRegistration(
        id=hook_id,
        event_kind=kind,
        argv=argv or (hook_id,),
        order=order,
        timeout_ms=timeout_ms,
    )


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def context() -> SessionContext:
    ctx = SessionContext("test-session")
    yield ctx
    ctx.close()


@pytest.fixture
def config(tmp_path: Path) -> HooklineConfig:
    """Config rooted in tmp_path with token counting disabled."""
    return HooklineConfig(
        base_dir=tmp_path,
        session_id="test-session",
        tokenizer_encoding=None,
    )


# ------------------------------------------------------------------
# Files on disk
# ------------------------------------------------------------------


def write_hook_script(directory: Path, name: str, body: str) -> tuple[str, ...]:
    """Write a Python hook script; return the argv that runs it."""
    path = directory / f"{name}.py"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return (sys.executable, str(path))


@pytest.fixture
def detached_hook(tmp_path: Path):
    """A hook that starts a detached child holding its stdout/stderr, then sleeps.

    Yields the argv.  The child writes its pid next to the script and is
    killed on teardown.
    """
    pid_file = tmp_path / "detached.pid"
    argv = write_hook_script(
        tmp_path, "detached",
        """
        import subprocess, sys, time
        child = subprocess.Popen(
            [sys.executable, "-c", "import time; time.sleep(10)"], start_new_session=True
        )
        with open(sys.argv[1], "w") as fh:
            fh.write(str(child.pid))
        time.sleep(30)
        """,
    )
    yield (*argv, str(pid_file))
    if pid_file.exists():
        try:
            os.kill(int(pid_file.read_text()), signal.SIGKILL)
        except (ProcessLookupError, ValueError):
            pass


def write_skill(
    skills_dir: Path,
    name: str,
    *,
    description: str,
    triggers: list[str] | None = None,
    body: str = "",
    methodology: str | None = None,
    components: dict[str, str] | None = None,
) -> Path:
    """Write ``<skills_dir>/<name>/SKILL.md`` plus its tier files.

    *methodology* and *components* give file contents; files are named
    ``METHODOLOGY.md`` and ``components/<id>.md``.
    """
    skill_dir = skills_dir / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    lines = ["---", f"name: {name}", f"description: {description}"]
    if triggers:
        lines.append("triggers:")
        lines.extend(f"  - {json.dumps(t)}" for t in triggers)
    if methodology is not None:
        (skill_dir / "METHODOLOGY.md").write_text(methodology, encoding="utf-8")
        lines.append("methodology: METHODOLOGY.md")
    if components:
        (skill_dir / "components").mkdir(exist_ok=True)
        lines.append("components:")
        for cid, text in components.items():
            (skill_dir / "components" / f"{cid}.md").write_text(text, encoding="utf-8")
            lines.append(f"  {cid}: components/{cid}.md")
    lines.append("---")
    skill_file = skill_dir / "SKILL.md"
    skill_file.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
    return skill_file
