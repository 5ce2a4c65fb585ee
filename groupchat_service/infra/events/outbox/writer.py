"""Outbox writer and the business unit of work.

The aggregate change and its outbox records are flushed and committed in
one database transaction. If the outbox rows cannot be written the whole
operation is rolled back and ``OutboxWriteError`` is raised, so business
state never exists without the events describing it.

Usage:
    async with unit_of_work(session_factory) as uow:
        group = Group.create(name="Design", owner_id="u-1")
        uow.session.add(group)
        uow.track(group)
    # committed here, together with the GroupCreatedEvent outbox record
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from groupchat_service.core.exceptions import OutboxWriteError
from groupchat_service.infra.events.outbox.models import OutboxRecord, OutboxStatus
from groupchat_service.infra.events.outbox.repository import OutboxRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from groupchat_service.core.events.base import DomainEvent
    from groupchat_service.core.events.buffer import HasDomainEvents

logger = logging.getLogger(__name__)


class OutboxWriter:
    """Turns buffered domain events into Pending outbox records."""

    def __init__(self, repository: OutboxRepository | None = None) -> None:
        self._repository = repository or OutboxRepository()

    @staticmethod
    def to_record(event: DomainEvent) -> OutboxRecord:
        return OutboxRecord(
            event_id=event.event_id,
            event_type=event.event_type,
            event_version=event.event_version,
            payload=event.serialize(),
            status=OutboxStatus.PENDING,
            created_at=event.occurred_at,
            retry_count=0,
        )

    async def save_events(
        self,
        session: AsyncSession,
        *aggregates: HasDomainEvents,
    ) -> list[OutboxRecord]:
        """Append one Pending record per buffered event and flush.

        The buffers are drained only after the flush succeeded, so a failed
        write leaves the events in memory for the caller to inspect.

        Raises:
            OutboxWriteError: If the records could not be written.
        """
        events = [event for aggregate in aggregates for event in aggregate.domain_events]
        if not events:
            return []

        records = [self.to_record(event) for event in events]
        try:
            await self._repository.add_many(session, records)
            await session.flush()
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to write outbox records",
                extra={
                    "event_ids": [str(event.event_id) for event in events],
                    "event_types": [event.event_type for event in events],
                },
            )
            msg = "Could not append events to the outbox"
            raise OutboxWriteError(
                msg,
                extra={"event_ids": [str(event.event_id) for event in events]},
            ) from exc

        for aggregate in aggregates:
            aggregate.domain_events.drain()

        logger.debug(
            "Outbox records written",
            extra={"count": len(records), "event_types": [r.event_type for r in records]},
        )
        return records


class OutboxUnitOfWork:
    """Session plus the aggregates whose events must reach the outbox."""

    def __init__(self, session: AsyncSession, writer: OutboxWriter) -> None:
        self.session = session
        self._writer = writer
        self._tracked: list[HasDomainEvents] = []
        self.records: list[OutboxRecord] = []

    def track(self, *aggregates: HasDomainEvents) -> None:
        for aggregate in aggregates:
            if not any(aggregate is tracked for tracked in self._tracked):
                self._tracked.append(aggregate)

    async def flush_events(self) -> list[OutboxRecord]:
        """Write outbox records for every tracked aggregate now."""
        records = await self._writer.save_events(self.session, *self._tracked)
        self.records.extend(records)
        return records


@asynccontextmanager
async def unit_of_work(
    session_factory: async_sessionmaker[AsyncSession],
    writer: OutboxWriter | None = None,
) -> AsyncIterator[OutboxUnitOfWork]:
    """Run a business operation and its outbox writes in one transaction.

    Commits on normal exit and rolls back on any exception. A commit
    failure is re-raised as ``OutboxWriteError`` when outbox records were
    part of the transaction.
    """
    async with session_factory() as session:
        uow = OutboxUnitOfWork(session, writer or OutboxWriter())
        try:
            yield uow
            await session.flush()
            await uow.flush_events()
            await session.commit()
        except OutboxWriteError:
            await session.rollback()
            raise
        except SQLAlchemyError as exc:
            await session.rollback()
            if uow.records:
                msg = "Business transaction with outbox records failed to commit"
                raise OutboxWriteError(
                    msg,
                    extra={"event_ids": [str(r.event_id) for r in uow.records]},
                ) from exc
            raise
        except BaseException:
            await session.rollback()
            raise


__all__ = ["OutboxUnitOfWork", "OutboxWriter", "unit_of_work"]
