"""Hookline CLI -- terminal interface for hook dispatch and skill activation.

This module is NEVER imported from hookline/__init__.py.
It is only loaded via the ``hookline`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click

from hookline.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from hookline.hookline import Hookline


@click.group()
@click.option(
    "--base-dir",
    default=None,
    envvar="HOOKLINE_BASE_DIR",
    type=click.Path(file_okay=False),
    help="Base directory holding hooks.yaml and skills/.",
)
@click.option(
    "--hooks-file",
    default=None,
    envvar="HOOKLINE_HOOKS_FILE",
    type=click.Path(dir_okay=False),
    help="Hook declaration file (YAML or JSON).",
)
@click.option(
    "--skills-dir",
    default=None,
    envvar="HOOKLINE_SKILLS_DIR",
    type=click.Path(file_okay=False),
    help="Directory of skill packages.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log dispatch and activation details.")
@click.pass_context
def cli(
    ctx: click.Context,
    base_dir: str | None,
    hooks_file: str | None,
    skills_dir: str | None,
    verbose: bool,
) -> None:
    """Hookline: lifecycle hooks and skill activation for assistant sessions."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "base_dir": base_dir,
        "hooks_file": hooks_file,
        "skills_dir": skills_dir,
    }
    if verbose:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=get_console(stderr=True), show_path=False)],
        )


def _get_hookline(ctx: click.Context) -> Hookline:
    """Open a Hookline session from Click context and the environment."""
    from hookline.hookline import Hookline
    from hookline.models.config import HooklineConfig

    config = HooklineConfig.from_env(**ctx.obj["overrides"])
    return Hookline.open(config)


@contextmanager
def _hookline_session(ctx: click.Context) -> Iterator[tuple[Hookline, Console]]:
    """Context manager that opens a session, yields (hookline, console), and cleans up.

    Ensures the session is closed on exit and formats exceptions as CLI errors.
    """
    console = get_console()
    try:
        h = _get_hookline(ctx)
        try:
            yield h, console
        finally:
            h.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from hookline.cli.commands.check import check  # noqa: E402
from hookline.cli.commands.fire import fire  # noqa: E402
from hookline.cli.commands.hooks import hooks  # noqa: E402
from hookline.cli.commands.match import match  # noqa: E402
from hookline.cli.commands.skills import skills  # noqa: E402

cli.add_command(hooks)
cli.add_command(skills)
cli.add_command(match)
cli.add_command(fire)
cli.add_command(check)
