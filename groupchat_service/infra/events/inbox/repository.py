"""Repository for the idempotency ledger."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select

from groupchat_service.core.database.base import utcnow
from groupchat_service.infra.events.inbox.models import ProcessedEvent

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession


class ProcessedEventRepository:
    """Data access for the ``processed_events`` table.

    Methods never commit; the consumer commits the ledger row together
    with the handler's effect.
    """

    async def exists(self, session: AsyncSession, event_id: uuid.UUID) -> bool:
        stmt = select(ProcessedEvent.id).where(ProcessedEvent.event_id == event_id).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def record(
        self,
        session: AsyncSession,
        event_id: uuid.UUID,
        event_type: str,
    ) -> ProcessedEvent:
        """Insert the ledger row and flush.

        The flush surfaces a unique violation right away when another
        consumer committed the same event concurrently.
        """
        entry = ProcessedEvent(event_id=event_id, event_type=event_type, processed_at=utcnow())
        session.add(entry)
        await session.flush()
        return entry

    async def count(self, session: AsyncSession, event_id: uuid.UUID | None = None) -> int:
        stmt = select(func.count()).select_from(ProcessedEvent)
        if event_id is not None:
            stmt = stmt.where(ProcessedEvent.event_id == event_id)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def prune(
        self,
        session: AsyncSession,
        *,
        older_than: timedelta = timedelta(days=30),
    ) -> int:
        """Delete ledger rows processed before the cutoff.

        Pruned events are no longer recognized as duplicates, so the
        retention must exceed the longest possible redelivery delay.

        Returns:
            Number of rows deleted
        """
        cutoff = utcnow() - older_than
        stmt = (
            delete(ProcessedEvent)
            .where(ProcessedEvent.processed_at < cutoff)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return result.rowcount or 0


__all__ = ["ProcessedEventRepository"]
