"""Repository for outbox records.

Provides methods for:
- Appending records inside a business unit of work
- Fetching pending records for the publisher
- Operator tooling: status counts, failed listings, manual replay, purge
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from groupchat_service.core.database.base import utcnow
from groupchat_service.infra.events.outbox.models import OutboxRecord, OutboxStatus

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class OutboxRepository:
    """Data access for the ``outbox_messages`` table.

    Methods never commit; the caller owns the transaction.
    """

    async def add(self, session: AsyncSession, record: OutboxRecord) -> OutboxRecord:
        session.add(record)
        return record

    async def add_many(
        self,
        session: AsyncSession,
        records: Iterable[OutboxRecord],
    ) -> list[OutboxRecord]:
        records = list(records)
        session.add_all(records)
        return records

    async def fetch_pending(
        self,
        session: AsyncSession,
        *,
        batch_size: int = 100,
    ) -> Sequence[OutboxRecord]:
        """Fetch the oldest pending records.

        Rows are locked with ``FOR UPDATE SKIP LOCKED`` so concurrent
        publisher instances never pick the same record. Dialects without
        row locking (SQLite) ignore the clause.

        Args:
            session: Database session
            batch_size: Maximum number of records to fetch

        Returns:
            Pending records ordered by creation time, oldest first
        """
        stmt = (
            select(OutboxRecord)
            .where(OutboxRecord.status == OutboxStatus.PENDING)
            .order_by(OutboxRecord.created_at.asc(), OutboxRecord.id.asc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_event_id(
        self,
        session: AsyncSession,
        event_id: uuid.UUID,
    ) -> OutboxRecord | None:
        stmt = select(OutboxRecord).where(OutboxRecord.event_id == event_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_status(self, session: AsyncSession) -> dict[OutboxStatus, int]:
        """Count records per status, every status present in the result."""
        stmt = select(OutboxRecord.status, func.count()).group_by(OutboxRecord.status)
        result = await session.execute(stmt)
        counts = dict.fromkeys(OutboxStatus, 0)
        for status, count in result.all():
            counts[OutboxStatus(status)] = count
        return counts

    async def list_failed(
        self,
        session: AsyncSession,
        *,
        limit: int = 50,
    ) -> Sequence[OutboxRecord]:
        """Failed records, oldest first, for operator inspection."""
        stmt = (
            select(OutboxRecord)
            .where(OutboxRecord.status == OutboxStatus.FAILED)
            .order_by(OutboxRecord.created_at.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def requeue_failed(
        self,
        session: AsyncSession,
        *,
        event_ids: Sequence[uuid.UUID] | None = None,
    ) -> int:
        """Put Failed records back to Pending with a fresh retry budget.

        This is the manual replay of quarantined records. The publisher
        itself never calls it.

        Args:
            session: Database session
            event_ids: Records to replay; all Failed records when None

        Returns:
            Number of records requeued
        """
        stmt = (
            update(OutboxRecord)
            .where(OutboxRecord.status == OutboxStatus.FAILED)
            .values(status=OutboxStatus.PENDING, retry_count=0, error_message=None)
        )
        if event_ids is not None:
            if not event_ids:
                return 0
            stmt = stmt.where(OutboxRecord.event_id.in_(list(event_ids)))
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def purge_published(
        self,
        session: AsyncSession,
        *,
        older_than: timedelta = timedelta(days=7),
    ) -> int:
        """Delete Published records confirmed before the cutoff.

        Pending and Failed records are never deleted.

        Returns:
            Number of records deleted
        """
        cutoff = utcnow() - older_than
        stmt = (
            delete(OutboxRecord)
            .where(
                OutboxRecord.status == OutboxStatus.PUBLISHED,
                OutboxRecord.published_at < cutoff,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return result.rowcount or 0


__all__ = ["OutboxRepository"]
