"""hookline match -- show which skills an utterance activates."""

from __future__ import annotations

import click

from hookline.cli.formatting import format_plan


@click.command()
@click.argument("utterance")
@click.pass_context
def match(ctx: click.Context, utterance: str) -> None:
    """Show the skills UTTERANCE would activate, without loading them."""
    from hookline.cli import _hookline_session

    with _hookline_session(ctx) as (h, console):
        format_plan(h.match(utterance), console)
