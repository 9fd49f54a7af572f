"""hookline skills -- list available skills."""

from __future__ import annotations

import click

from hookline.cli.formatting import format_skills


@click.command()
@click.pass_context
def skills(ctx: click.Context) -> None:
    """Show available skills with their triggers and tier depth."""
    from hookline.cli import _hookline_session

    with _hookline_session(ctx) as (h, console):
        format_skills(list(h.registry.skills), console)
