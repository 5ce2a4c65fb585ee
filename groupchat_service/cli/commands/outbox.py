"""Outbox inspection and operator commands.

Example:bash
    # Records per status
    groupchat outbox status

    # Inspect quarantined records
    groupchat outbox failed --limit 20

    # Replay one quarantined record, or all of them
    groupchat outbox replay --event-id 0b6f8f0e-...
    groupchat outbox replay --all

    # Delete Published records older than 7 days
    groupchat outbox purge --days 7
"""

import json
import sys
import uuid
from datetime import timedelta

import click

from groupchat_service.cli.utils import coro, error, header, info, key_values, success, warning
from groupchat_service.core.settings import get_outbox_settings
from groupchat_service.infra.database import get_async_session
from groupchat_service.infra.events.outbox.repository import OutboxRepository


@click.group(name="outbox")
def outbox() -> None:
    """Transactional outbox commands."""


@outbox.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@coro
async def status(output_format: str) -> None:
    """Show the number of records per status."""
    async with get_async_session() as session:
        counts = await OutboxRepository().count_by_status(session)

    if output_format == "json":
        click.echo(json.dumps({str(k): v for k, v in counts.items()}))
        return

    header("Outbox Status")
    key_values((str(key), value) for key, value in counts.items())


@outbox.command()
@click.option("--limit", default=50, show_default=True, type=click.IntRange(min=1), help="Max rows")
@coro
async def failed(limit: int) -> None:
    """List Failed records with their last error, oldest first."""
    async with get_async_session() as session:
        records = await OutboxRepository().list_failed(session, limit=limit)

    if not records:
        success("No failed outbox records")
        return

    header(f"Failed Outbox Records ({len(records)})")
    for record in records:
        click.echo(
            f"  {record.event_id}  {record.event_type:<28} "
            f"retries={record.retry_count}  created={record.created_at:%Y-%m-%d %H:%M:%S}",
        )
        if record.error_message:
            click.secho(f"      {record.error_message}", fg="red", dim=True)


@outbox.command()
@click.option(
    "--event-id",
    "event_ids",
    multiple=True,
    type=click.UUID,
    help="Event id of a Failed record to replay (repeatable)",
)
@click.option("--all", "replay_all", is_flag=True, help="Replay every Failed record")
@coro
async def replay(event_ids: tuple[uuid.UUID, ...], replay_all: bool) -> None:
    """Put Failed records back to Pending with a fresh retry budget."""
    if not event_ids and not replay_all:
        error("Pass --event-id or --all")
        sys.exit(1)
    if event_ids and replay_all:
        error("--event-id and --all are mutually exclusive")
        sys.exit(1)

    async with get_async_session() as session:
        count = await OutboxRepository().requeue_failed(
            session,
            event_ids=None if replay_all else list(event_ids),
        )
        await session.commit()

    if count:
        success(f"Requeued {count} record(s) for publishing")
    else:
        warning("No Failed records matched")


@outbox.command()
@click.option(
    "--days",
    type=click.IntRange(min=0),
    default=None,
    help="Age in days of Published records to delete [default: OUTBOX_RETENTION_DAYS]",
)
@coro
async def purge(days: int | None) -> None:
    """Delete Published records older than the retention period."""
    if days is None:
        days = get_outbox_settings().retention_days

    async with get_async_session() as session:
        count = await OutboxRepository().purge_published(session, older_than=timedelta(days=days))
        await session.commit()

    info(f"Deleted {count} Published record(s) older than {days} day(s)")
