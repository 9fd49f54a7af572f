"""Hookline -- the public entry point for one assistant session.

Ties together the registry, matcher, dispatcher and disclosure loader into a
session-scoped API.  Users interact with ``Hookline.open()``,
``h.fire()``, ``h.activate()``, etc.

Events are handled one at a time in arrival order; hooks of a single event
run concurrently.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hookline.declarations import load_hooks_file, load_skills_dir
from hookline.disclosure import ActivationOutcome, DisclosureLoader
from hookline.dispatch import Dispatcher
from hookline.engine.tokens import make_token_counter
from hookline.exceptions import SessionClosedError
from hookline.invoker import SubprocessInvoker
from hookline.matching import ActivationPlan, Matcher
from hookline.models.config import HooklineConfig
from hookline.models.event import Event, LifecycleEventKind
from hookline.registry import Registry
from hookline.session import SessionContext

if TYPE_CHECKING:
    from collections.abc import Mapping

    from hookline.models.hooks import ExecutionResult
    from hookline.models.skill import TierContent
    from hookline.protocols import ContentReader, Invoker, TokenCounter
    from hookline.session import SessionSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventOutcome:
    """Everything that happened while handling one event.

    Attributes:
        event: The handled event.
        results: Hook results in plan order.
        activation: Skill activation outcome (``UserPromptSubmit`` only).
    """

    event: Event
    results: tuple[ExecutionResult, ...]
    activation: ActivationOutcome = field(default_factory=ActivationOutcome)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results) and self.activation.ok

    @property
    def failed_hooks(self) -> list[ExecutionResult]:
        return [r for r in self.results if not r.ok]

    def context_text(self) -> str:
        """Activated skill content, ready to inject into the assistant context."""
        blocks = []
        for act in self.activation.activations:
            blocks.append(f'<skill name="{act.skill_id}">\n{act.text.strip()}\n</skill>')
        return "\n\n".join(blocks)


class Hookline:
    """Hook dispatch and skill activation for one assistant session.

    Create via :meth:`Hookline.open` (recommended) or
    :meth:`Hookline.from_components` (testing / DI).

    Example::

        with Hookline.open() as h:
            h.fire("SessionStart")
            outcome = h.fire("UserPromptSubmit", {"prompt": "research this"})
            print(outcome.context_text())
    """

    def __init__(
        self,
        *,
        config: HooklineConfig,
        registry: Registry,
        dispatcher: Dispatcher,
        loader: DisclosureLoader,
        context: SessionContext,
    ) -> None:
        self._config = config
        self._registry = registry
        self._matcher = Matcher(registry)
        self._dispatcher = dispatcher
        self._loader = loader
        self._context = context
        self._event_lock = threading.Lock()
        self._closed = False

    @classmethod
    def open(
        cls,
        config: HooklineConfig | None = None,
        *,
        invoker: Invoker | None = None,
        tokenizer: TokenCounter | None = None,
        reader: ContentReader | None = None,
    ) -> Hookline:
        """Load declarations, freeze the registry and start a session.

        Args:
            config: Session configuration.  Read from the environment if None.
            invoker: Runs hook executables.  SubprocessInvoker by default.
            tokenizer: Measures loaded skill content.  Chosen from
                ``config.tokenizer_encoding`` by default.
            reader: Reads skill content blobs.

        Raises:
            RegistrationError: If any declaration is malformed or
                inconsistent.  No session is started in that case.
        """
        if config is None:
            config = HooklineConfig.from_env()

        registry = build_registry(config)
        dispatcher = Dispatcher(
            invoker or SubprocessInvoker(),
            environment=config.hook_environment(),
            error_marker=config.error_marker,
            max_workers=config.max_workers,
        )
        loader = DisclosureLoader(
            registry,
            reader=reader,
            token_counter=tokenizer or make_token_counter(config.tokenizer_encoding),
        )
        logger.info(
            "Session %s started: %d hook(s), %d skill(s)",
            config.session_id, registry.hook_count, len(registry.skills),
        )
        return cls(
            config=config,
            registry=registry,
            dispatcher=dispatcher,
            loader=loader,
            context=SessionContext(config.session_id),
        )

    @classmethod
    def from_components(
        cls,
        *,
        registry: Registry,
        invoker: Invoker,
        config: HooklineConfig | None = None,
        tokenizer: TokenCounter | None = None,
        reader: ContentReader | None = None,
    ) -> Hookline:
        """Create a ``Hookline`` around a pre-built registry.

        The registry is frozen.  Useful for testing and DI.
        """
        if config is None:
            config = HooklineConfig(tokenizer_encoding=None)
        registry.freeze()
        return cls(
            config=config,
            registry=registry,
            dispatcher=Dispatcher(
                invoker,
                environment=config.hook_environment(),
                error_marker=config.error_marker,
                max_workers=config.max_workers,
            ),
            loader=DisclosureLoader(registry, reader=reader, token_counter=tokenizer),
            context=SessionContext(config.session_id),
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> HooklineConfig:
        return self._config

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def matcher(self) -> Matcher:
        return self._matcher

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def session_id(self) -> str:
        return self._context.session_id

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def handle(self, event: Event) -> EventOutcome:
        """Run the hooks for *event* and, for prompts, activate matching skills.

        Hook and skill failures are reported in the outcome, never raised.
        A ``SessionEnd`` event ends the session after its hooks have run.

        Raises:
            SessionClosedError: If the session already ended.
        """
        with self._event_lock:
            if self._closed:
                raise SessionClosedError(self.session_id)
            results = self._dispatcher.dispatch(
                self._matcher.plan_for_event(event), self._context
            )
            activation = ActivationOutcome()
            if event.kind is LifecycleEventKind.USER_PROMPT_SUBMIT and event.prompt:
                plan = self._matcher.plan_for_utterance(event.prompt)
                activation = self._loader.activate_plan(self._context, plan)
            outcome = EventOutcome(event=event, results=results, activation=activation)
            if event.kind is LifecycleEventKind.SESSION_END:
                self._close_locked()
        return outcome

    def fire(
        self,
        kind: LifecycleEventKind | str,
        payload: Mapping[str, object] | None = None,
    ) -> EventOutcome:
        """Build an :class:`Event` of *kind* and handle it."""
        return self.handle(Event(kind=LifecycleEventKind.parse(kind), payload=payload or {}))

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def match(self, utterance: str) -> ActivationPlan:
        """Which skills *utterance* would activate, without loading anything."""
        return self._matcher.plan_for_utterance(utterance)

    def activate(self, utterance: str) -> ActivationOutcome:
        """Activate every skill matching *utterance*."""
        with self._event_lock:
            return self._loader.activate_plan(self._context, self.match(utterance))

    def expand(self, skill_id: str, tier: int) -> TierContent:
        """Load the next tier of an activated skill (see DisclosureLoader.expand)."""
        return self._loader.expand(self._context, skill_id, tier)

    def load_component(self, skill_id: str, component_id: str) -> TierContent:
        return self._loader.load_component(self._context, skill_id, component_id)

    def follow_references(self, skill_id: str) -> list[TierContent]:
        return self._loader.follow_references(self._context, skill_id)

    def status(self) -> SessionSnapshot:
        """Consistent snapshot of the session's activations and hook runs."""
        return self._context.snapshot()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> SessionSnapshot:
        """End the session.  Idempotent; returns the final snapshot.

        Waits for an event that is being handled to finish first.
        """
        with self._event_lock:
            return self._close_locked()

    def _close_locked(self) -> SessionSnapshot:
        if not self._closed:
            self._closed = True
            self._dispatcher.close()
        return self._context.close()

    def __enter__(self) -> Hookline:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def build_registry(config: HooklineConfig) -> Registry:
    """Load hook and skill declarations for *config* into a frozen registry.

    Raises:
        RegistrationError: On the first malformed or conflicting declaration.
    """
    variables = {**os.environ, **config.hook_environment()}
    registry = Registry()
    for hook in load_hooks_file(
        config.resolved_hooks_file,
        variables=variables,
        default_timeout_ms=config.default_timeout_ms,
    ):
        registry.register_hook(hook)
    for skill in load_skills_dir(config.resolved_skills_dir):
        registry.register_skill(skill)
    registry.freeze()
    return registry
