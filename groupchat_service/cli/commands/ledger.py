"""Idempotency ledger maintenance."""

from datetime import timedelta

import click

from groupchat_service.cli.utils import coro, info, warning
from groupchat_service.core.settings import get_consumer_settings
from groupchat_service.infra.database import get_async_session
from groupchat_service.infra.events.inbox.repository import ProcessedEventRepository


@click.group(name="ledger")
def ledger() -> None:
    """Processed-event ledger commands."""


@ledger.command()
@click.option(
    "--days",
    type=click.IntRange(min=1),
    default=None,
    help="Age in days of ledger rows to delete [default: CONSUMER_RETENTION_DAYS]",
)
@coro
async def prune(days: int | None) -> None:
    """Delete old ledger rows.

    Events older than the retention are no longer recognized as
    duplicates, so keep it above the longest redelivery delay.
    """
    if days is None:
        days = get_consumer_settings().retention_days
    if days < 7:
        warning("Short retention: late redeliveries may be applied twice")

    async with get_async_session() as session:
        count = await ProcessedEventRepository().prune(session, older_than=timedelta(days=days))
        await session.commit()

    info(f"Deleted {count} ledger row(s) older than {days} day(s)")
