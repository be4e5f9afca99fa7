"""Administrative CLI for document number counters.

Usage:
    permit-trust-admin counters list
    permit-trust-admin counters show 2024
    permit-trust-admin counters reset 2024 --to 0 --actor ops@example.com --reason "test data cleanup"

Resetting a counter below the highest issued number makes the next approval
reuse a document number. The reset is therefore confirmed interactively
(unless ``--yes``) and always written to the ``sequence_counter_resets``
audit table.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
import structlog

from permit_trust.db import async_session_maker
from permit_trust.logging import setup_logging
from permit_trust.services.sequence import InvalidCounterReset, SequenceCounterService

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _run(fn: Callable[[SequenceCounterService], Awaitable[T]]) -> T:
    """Run ``fn`` with a counter service bound to a fresh session."""

    async def runner() -> T:
        async with async_session_maker() as session:
            return await fn(SequenceCounterService(session))

    return asyncio.run(runner())


@click.group()
def cli() -> None:
    """Permit trust administration."""
    setup_logging()


@cli.group()
def counters() -> None:
    """Inspect and reset per-year document number counters."""
    pass


@counters.command(name="list")
def list_counters() -> None:
    """List all counters, most recent period first."""
    infos = _run(lambda service: service.list_counters())
    if not infos:
        click.echo("No counters yet.")
        return
    for info in infos:
        updated = info.updated_at.isoformat() if info.updated_at else "-"
        click.echo(f"{info.period}  last={info.last_issued}  next={info.next_value}  updated={updated}")


@counters.command()
@click.argument("period", type=int)
def show(period: int) -> None:
    """Show one counter and the next document number it would issue."""

    async def fetch(service: SequenceCounterService) -> tuple[int, int, bool, str]:
        info = await service.get_info(period)
        preview = await service.preview_next(period)
        return info.last_issued, preview, info.exists, service.format(preview, period)

    last_issued, preview, exists, next_number = _run(fetch)
    click.echo(f"Period:        {period}")
    click.echo(f"Exists:        {'yes' if exists else 'no'}")
    click.echo(f"Last issued:   {last_issued}")
    click.echo(f"Next value:    {preview}")
    click.echo(f"Next number:   {next_number}")


@counters.command()
@click.argument("period", type=int)
@click.option("--to", "reset_to", type=click.IntRange(min=0), required=True, help="Value to set last_issued to.")
@click.option("--actor", required=True, help="Who is performing the reset (recorded in the audit table).")
@click.option("--reason", required=True, help="Why the reset is needed (recorded in the audit table).")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def reset(period: int, reset_to: int, actor: str, reason: str, yes: bool) -> None:
    """Reset the counter for PERIOD. Dangerous: can produce duplicate document numbers."""
    if not yes:
        click.confirm(
            f"Reset counter {period} to {reset_to}? Numbers above it will be issued again.",
            abort=True,
        )
    try:
        audit = _run(lambda service: service.reset(period, reset_to=reset_to, actor=actor, reason=reason))
    except InvalidCounterReset as e:
        raise click.BadParameter(str(e))
    click.echo(f"Counter {period} reset from {audit.previous_value} to {audit.reset_to} by {audit.reset_by}.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
