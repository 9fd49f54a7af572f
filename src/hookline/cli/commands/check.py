"""hookline check -- validate hook and skill declarations."""

from __future__ import annotations

import click

from hookline.cli.formatting import format_error, get_console


@click.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Load all declarations and report the first problem found."""
    from hookline.exceptions import HooklineError
    from hookline.hookline import build_registry
    from hookline.models.config import HooklineConfig

    console = get_console()
    try:
        config = HooklineConfig.from_env(**ctx.obj["overrides"])
        registry = build_registry(config)
    except HooklineError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    console.print(
        f"[green]OK[/green]  {registry.hook_count} hook(s), "
        f"{len(registry.skills)} skill(s)"
    )
    console.print(f"  Hooks:  [dim]{config.resolved_hooks_file}[/dim]")
    console.print(f"  Skills: [dim]{config.resolved_skills_dir}[/dim]")
