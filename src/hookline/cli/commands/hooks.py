"""hookline hooks -- list registered hooks in dispatch order."""

from __future__ import annotations

import click

from hookline.cli.formatting import format_hooks
from hookline.models.event import LifecycleEventKind

_KIND_CHOICES = [k.value for k in LifecycleEventKind]


@click.command()
@click.option(
    "--event",
    "event_kind",
    default=None,
    type=click.Choice(_KIND_CHOICES, case_sensitive=False),
    help="Only show hooks for this lifecycle event.",
)
@click.pass_context
def hooks(ctx: click.Context, event_kind: str | None) -> None:
    """Show registered hooks, grouped by event, in the order they run."""
    from hookline.cli import _hookline_session

    with _hookline_session(ctx) as (h, console):
        kinds = [LifecycleEventKind.parse(event_kind)] if event_kind else list(LifecycleEventKind)
        ordered = [hook for kind in kinds for hook in h.registry.hooks_for(kind)]
        format_hooks(ordered, console)
