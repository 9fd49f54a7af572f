"""Dispatcher: runs a hook plan with per-hook timeout and failure isolation.

Hooks of one plan fan out on a thread pool owned by that dispatch.  A
failing, missing or timed-out hook becomes an ExecutionResult; nothing a
hook does can abort the dispatch.  Results come back in plan order, never
completion order.

A hook's timeout is measured from the moment a worker starts running it,
not from when it was queued.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hookline.models.config import DEFAULT_ERROR_MARKER
from hookline.models.hooks import ExecutionResult, ExecutionStatus, HookErrorKind

if TYPE_CHECKING:
    from hookline.matching import HookPlan
    from hookline.models.event import Event
    from hookline.models.hooks import HookRegistration
    from hookline.protocols import InvocationOutcome, Invoker
    from hookline.session import SessionContext

logger = logging.getLogger(__name__)

# Extra wait on top of a hook's timeout before collection gives up on it.
COLLECTION_GRACE_MS = 1000


def find_error_marker(text: str, marker: str) -> str | None:
    """Return the message of the first line starting with *marker*."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(marker):
            return stripped[len(marker):].strip() or marker
    return None


@dataclass
class _PendingHook:
    """One submitted hook and the moment a worker picked it up."""

    hook: HookRegistration
    future: Future | None = None
    started: threading.Event = field(default_factory=threading.Event)
    started_at: float = 0.0

    def mark_started(self) -> None:
        self.started_at = time.monotonic()
        self.started.set()


class Dispatcher:
    """Executes hook plans through an :class:`~hookline.protocols.Invoker`.

    Usage::

        dispatcher = Dispatcher(SubprocessInvoker(), environment=config.hook_environment())
        results = dispatcher.dispatch(matcher.plan_for_event(event), context)
        for r in results:
            print(r.hook_id, r.status)

    Args:
        invoker: Runs one external unit.
        environment: Variables exported to every hook (base dir, log dir,
            session identity).
        error_marker: Line prefix a hook emits to report failure.
        max_workers: Upper bound on concurrently running hooks of one plan.
        grace_ms: Extra time, beyond a hook's own timeout, that collection
            waits before recording the hook as timed out.
    """

    def __init__(
        self,
        invoker: Invoker,
        *,
        environment: Mapping[str, str] | None = None,
        error_marker: str = DEFAULT_ERROR_MARKER,
        max_workers: int = 8,
        grace_ms: int = COLLECTION_GRACE_MS,
    ) -> None:
        self._invoker = invoker
        self._environment = dict(environment or {})
        self._error_marker = error_marker
        self._grace_ms = grace_ms
        self._max_workers = max_workers
        self._closed = False

    def dispatch(self, plan: HookPlan, context: SessionContext) -> tuple[ExecutionResult, ...]:
        """Run every hook in *plan* and record the results in *context*.

        Returns:
            One ExecutionResult per planned hook, in plan order.

        Raises:
            RuntimeError: If the dispatcher has been closed.
        """
        if self._closed:
            raise RuntimeError("Dispatcher is closed")
        event = plan.event
        stdin = json.dumps(event.to_wire(context.session_id), default=str)

        slots = [
            _PendingHook(hook) if hook.event_kind is event.kind else None
            for hook in plan.hooks
        ]
        runnable = [s for s in slots if s is not None]
        pool = self._submit(runnable, event, stdin)

        collected: list[ExecutionResult] = []
        try:
            for hook, slot in zip(plan.hooks, slots):
                if slot is None:
                    collected.append(self._skipped(hook))
                    continue
                result, abandoned = self._collect(slot)
                collected.append(result)
                if abandoned:
                    # The abandoned hook still holds its worker; hooks that
                    # are still queued move to a fresh pool.
                    pool = self._resubmit(pool, runnable, event, stdin)
        finally:
            if pool is not None:
                pool.shutdown(wait=False)

        results = tuple(collected)
        context.record_dispatch(event.kind, results)

        failed = [r.hook_id for r in results if not r.ok]
        logger.debug(
            "Dispatched %s: %d hook(s), %d not successful",
            event.kind.value, len(results), len(failed),
        )
        return results

    def close(self) -> None:
        """Stop accepting work.  Hooks still running are left to finish."""
        self._closed = True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _submit(
        self, pending: list[_PendingHook], event: Event, stdin: str
    ) -> ThreadPoolExecutor | None:
        if not pending:
            return None
        pool = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(pending)),
            thread_name_prefix="hookline-hook",
        )
        for p in pending:
            p.future = pool.submit(self._run_hook, p, event, stdin)
        return pool

    def _resubmit(
        self,
        pool: ThreadPoolExecutor | None,
        runnable: list[_PendingHook],
        event: Event,
        stdin: str,
    ) -> ThreadPoolExecutor | None:
        # cancel() only succeeds for futures no worker has picked up yet.
        queued = [p for p in runnable if p.future.cancel()]
        if pool is not None:
            pool.shutdown(wait=False)
        if queued:
            logger.debug("Moving %d queued hook(s) to a fresh pool", len(queued))
        return self._submit(queued, event, stdin)

    def _collect(self, pending: _PendingHook) -> tuple[ExecutionResult, bool]:
        """Wait for one hook.  Returns its result and whether it was abandoned."""
        hook = pending.hook
        # Hooks ahead in the plan are finished or abandoned by now, so a
        # worker is free or about to be.
        pending.started.wait()
        deadline = pending.started_at + (hook.timeout_ms + self._grace_ms) / 1000
        try:
            return pending.future.result(timeout=max(0.0, deadline - time.monotonic())), False
        except FutureTimeoutError:
            # The invoker did not honour the timeout; stop waiting for it.
            logger.warning("Hook %s did not return within its timeout", hook.id)
            result = ExecutionResult(
                hook_id=hook.id,
                status=ExecutionStatus.TIMED_OUT,
                duration_ms=(time.monotonic() - pending.started_at) * 1000,
                error=HookErrorKind.TIMED_OUT,
                detail=f"no result after {hook.timeout_ms} ms",
            )
            return result, True

    @staticmethod
    def _skipped(hook: HookRegistration) -> ExecutionResult:
        return ExecutionResult(
            hook_id=hook.id,
            status=ExecutionStatus.SKIPPED,
            error=HookErrorKind.KIND_MISMATCH,
            detail=f"registered for {hook.event_kind.value}",
        )

    def _run_hook(self, pending: _PendingHook, event: Event, stdin: str) -> ExecutionResult:
        pending.mark_started()
        hook = pending.hook
        env = dict(self._environment)
        env["HOOKLINE_EVENT"] = event.kind.value
        env["HOOKLINE_HOOK_ID"] = hook.id

        start = time.perf_counter()
        try:
            outcome = self._invoker.invoke(
                hook.argv, stdin=stdin, env=env, timeout_s=hook.timeout_ms / 1000
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            logger.warning("Hook %s unavailable: %s", hook.id, exc)
            return ExecutionResult(
                hook_id=hook.id,
                status=ExecutionStatus.FAILED,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=HookErrorKind.HOOK_UNAVAILABLE,
                detail=f"{type(exc).__name__}: {exc}",
            )
        except Exception as exc:
            logger.error("Invoker raised for hook %s", hook.id, exc_info=True)
            return ExecutionResult(
                hook_id=hook.id,
                status=ExecutionStatus.FAILED,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=HookErrorKind.INVOKER_ERROR,
                detail=f"{type(exc).__name__}: {exc}",
            )

        result = self._interpret(hook, outcome)
        if not result.ok:
            logger.warning(
                "Hook %s %s (%s)", hook.id, result.status.value,
                result.detail or result.error.value,
            )
        return result

    def _interpret(self, hook: HookRegistration, outcome: InvocationOutcome) -> ExecutionResult:
        """Map an invocation outcome onto an ExecutionResult."""
        common = {
            "hook_id": hook.id,
            "output": outcome.stdout,
            "duration_ms": outcome.duration_ms,
            "exit_code": outcome.exit_code,
        }
        if outcome.timed_out:
            return ExecutionResult(
                status=ExecutionStatus.TIMED_OUT,
                error=HookErrorKind.TIMED_OUT,
                detail=f"killed after {hook.timeout_ms} ms",
                **common,
            )
        if outcome.exit_code != 0:
            if outcome.exit_code is not None and outcome.exit_code < 0:
                detail = f"terminated by signal {-outcome.exit_code}"
            else:
                detail = f"exit status {outcome.exit_code}"
            if outcome.stderr.strip():
                detail += f": {outcome.stderr.strip().splitlines()[-1]}"
            return ExecutionResult(
                status=ExecutionStatus.FAILED,
                error=HookErrorKind.EXIT_STATUS,
                detail=detail,
                **common,
            )
        marker = find_error_marker(outcome.stdout, self._error_marker)
        if marker is None:
            marker = find_error_marker(outcome.stderr, self._error_marker)
        if marker is not None:
            return ExecutionResult(
                status=ExecutionStatus.FAILED,
                error=HookErrorKind.ERROR_MARKER,
                detail=marker,
                **common,
            )
        return ExecutionResult(status=ExecutionStatus.SUCCESS, **common)
