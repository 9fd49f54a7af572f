"""SubprocessInvoker: runs hook executables as child processes.

Arguments are passed as a list (``shell=False``) so nothing in a hook's
argv is ever reinterpreted by a shell.  Each hook gets its own process
group on POSIX so a timeout kills the hook together with anything it
spawned.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from collections.abc import Mapping, Sequence

from hookline.protocols import InvocationOutcome

logger = logging.getLogger(__name__)

_POSIX = os.name == "posix"

# How long to keep reading output after killing a timed-out hook.
KILL_DRAIN_S = 1.0


class SubprocessInvoker:
    """Invoker backed by :class:`subprocess.Popen`.

    Usage::

        invoker = SubprocessInvoker()
        outcome = invoker.invoke(
            ["/usr/bin/env", "true"], stdin="{}", env={}, timeout_s=5.0,
        )

    Args:
        inherit_env: Layer the hook environment on top of ``os.environ``
            (default) instead of passing it alone.
        cwd: Working directory for hook processes.
    """

    def __init__(self, *, inherit_env: bool = True, cwd: str | None = None) -> None:
        self._inherit_env = inherit_env
        self._cwd = cwd

    def invoke(
        self,
        argv: Sequence[str],
        *,
        stdin: str,
        env: Mapping[str, str],
        timeout_s: float,
    ) -> InvocationOutcome:
        full_env = dict(os.environ) if self._inherit_env else {}
        full_env.update(env)

        start = time.perf_counter()
        # FileNotFoundError / PermissionError propagate to the dispatcher,
        # which reports them as an unavailable hook.
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=full_env,
            cwd=self._cwd,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=_POSIX,
        )
        try:
            stdout, stderr = proc.communicate(input=stdin, timeout=timeout_s)
        except subprocess.TimeoutExpired:
            self._terminate(proc)
            stdout, stderr = self._drain(proc)
            return InvocationOutcome(
                exit_code=None,
                stdout=stdout or "",
                stderr=stderr or "",
                timed_out=True,
                duration_ms=(time.perf_counter() - start) * 1000,
            )

        return InvocationOutcome(
            exit_code=proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    @staticmethod
    def _terminate(proc: subprocess.Popen) -> None:
        """Kill a hook process (and its process group on POSIX)."""
        try:
            if _POSIX:
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            # Exited between the timeout and the kill.
            pass
        logger.debug("Killed hook process %d after timeout", proc.pid)

    @staticmethod
    def _drain(proc: subprocess.Popen) -> tuple[str, str]:
        """Collect what a killed hook wrote, without waiting on its pipes forever.

        A descendant that left the hook's process group can keep the pipes
        open after the kill; past KILL_DRAIN_S the pipes are closed and the
        partial output kept.
        """
        try:
            return proc.communicate(timeout=KILL_DRAIN_S)
        except subprocess.TimeoutExpired as exc:
            logger.warning(
                "Hook process %d left a descendant holding its output open", proc.pid
            )
            for pipe in (proc.stdout, proc.stderr):
                if pipe is not None:
                    pipe.close()
            proc.wait()
            return _decode(exc.stdout), _decode(exc.stderr)


def _decode(data: bytes | str | None) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data or ""
