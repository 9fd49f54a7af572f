"""Rich formatting helpers for the Hookline CLI.

Provides functions that format SDK data structures for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hookline.models.hooks import ExecutionStatus

if TYPE_CHECKING:
    from hookline.hookline import EventOutcome
    from hookline.matching import ActivationPlan
    from hookline.models.hooks import HookRegistration
    from hookline.models.skill import Skill

_STATUS_STYLE = {
    ExecutionStatus.SUCCESS: "green",
    ExecutionStatus.FAILED: "red",
    ExecutionStatus.TIMED_OUT: "yellow",
    ExecutionStatus.SKIPPED: "dim",
}


def get_console(stderr: bool = False) -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=stderr)


def format_hooks(hooks: list[HookRegistration], console: Console) -> None:
    """Display registered hooks in dispatch order."""
    if not hooks:
        console.print("[dim]No hooks registered.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Hook", style="yellow", no_wrap=True)
    table.add_column("Timeout", justify="right")
    table.add_column("Command")

    for position, hook in enumerate(hooks, start=1):
        table.add_row(
            hook.event_kind.value,
            str(position),
            escape(hook.id),
            f"{hook.timeout_ms} ms",
            escape(" ".join(hook.argv)),
        )

    console.print(table)


def format_skills(skills: list[Skill], console: Console) -> None:
    """Display skills in declaration order."""
    if not skills:
        console.print("[dim]No skills registered.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Skill", style="yellow", no_wrap=True)
    table.add_column("Tiers", justify="right", style="cyan")
    table.add_column("Triggers")
    table.add_column("Description", style="dim")

    for skill in skills:
        table.add_row(
            escape(skill.id),
            str(skill.max_tier),
            escape(", ".join(skill.triggers)),
            escape(skill.descriptor),
        )

    console.print(table)


def format_plan(plan: ActivationPlan, console: Console) -> None:
    """Display which skills an utterance activates and why."""
    if not plan:
        console.print("[dim]No skills match.[/dim]")
        return

    for m in plan.matches:
        matched = ", ".join(m.matched)
        console.print(f"[yellow]{escape(m.skill_id)}[/yellow]  [dim]matched: {escape(matched)}[/dim]")


def format_outcome(outcome: EventOutcome, console: Console) -> None:
    """Display hook results in plan order, then skill activation failures."""
    results = outcome.results
    if not results:
        console.print(f"[dim]No hooks for {outcome.event.kind.value}.[/dim]")
    else:
        table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
        table.add_column("Hook", style="yellow", no_wrap=True)
        table.add_column("Status", no_wrap=True)
        table.add_column("Time", justify="right", style="dim")
        table.add_column("Detail")

        for r in results:
            style = _STATUS_STYLE[r.status]
            table.add_row(
                escape(r.hook_id),
                f"[{style}]{r.status.value}[/{style}]",
                f"{r.duration_ms:.0f} ms",
                escape(r.detail or ""),
            )
        console.print(table)

    for skill_id, exc in outcome.activation.failures.items():
        console.print(f"[red]skill {escape(skill_id)}:[/red] {escape(str(exc))}", highlight=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
