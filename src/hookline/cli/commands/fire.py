"""hookline fire -- dispatch one lifecycle event."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import click

from hookline.cli.formatting import format_error, format_outcome, get_console
from hookline.models.event import LifecycleEventKind

if TYPE_CHECKING:
    from hookline.hookline import EventOutcome

_KIND_CHOICES = [k.value for k in LifecycleEventKind]


def _read_payload(raw: str | None) -> dict:
    """Payload from --payload, else JSON piped on stdin, else empty."""
    if raw is None:
        stream = click.get_text_stream("stdin")
        if stream.isatty():
            return {}
        raw = stream.read()
    if not raw.strip():
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise click.BadParameter("payload must be a JSON object", param_hint="--payload")
    # The host runtime includes its own event name; the KIND argument wins.
    data.pop("hook_event_name", None)
    return data


@click.command()
@click.argument("kind", type=click.Choice(_KIND_CHOICES, case_sensitive=False))
@click.option("--payload", default=None, help="Event payload as a JSON object (default: stdin).")
@click.option("--json", "as_json", is_flag=True, help="Print the outcome as JSON.")
@click.pass_context
def fire(ctx: click.Context, kind: str, payload: str | None, as_json: bool) -> None:
    """Dispatch a KIND event, run its hooks and activate matching skills.

    Activated skill content is written to stdout so a host runtime can add it
    to the assistant context; hook results go to stderr.  Hook failures are
    reported but do not change the exit status.
    """
    from hookline.cli import _hookline_session

    try:
        data = _read_payload(payload)
    except (json.JSONDecodeError, click.BadParameter) as e:
        format_error(f"Invalid payload: {e}", get_console(stderr=True))
        raise SystemExit(1) from None

    with _hookline_session(ctx) as (h, _console):
        outcome = h.fire(LifecycleEventKind.parse(kind), data)

        if as_json:
            click.echo(json.dumps(_outcome_to_dict(outcome), indent=2))
            return

        text = outcome.context_text()
        if text:
            click.echo(text)
        format_outcome(outcome, get_console(stderr=True))


def _outcome_to_dict(outcome: EventOutcome) -> dict:
    return {
        "event": outcome.event.kind.value,
        "results": [
            {
                "hook_id": r.hook_id,
                "status": r.status.value,
                "error": r.error.value if r.error else None,
                "duration_ms": round(r.duration_ms, 1),
                "exit_code": r.exit_code,
                "detail": r.detail,
                "output": r.output,
            }
            for r in outcome.results
        ],
        "activated": outcome.activation.activated_ids,
        "failures": {k: str(v) for k, v in outcome.activation.failures.items()},
        "context": outcome.context_text(),
    }
