"""Tests for the outbox repository against SQLite."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import ClassVar

from groupchat_service.core.events import DomainEvent
from groupchat_service.infra.events.outbox.models import OutboxRecord, OutboxStatus
from groupchat_service.infra.events.outbox.repository import OutboxRepository
from groupchat_service.infra.events.outbox.writer import OutboxWriter


class TicketOpened(DomainEvent):
    event_type: ClassVar[str] = "TicketOpened"

    ticket_id: str


def make_record(seq: int, *, minutes_ago: int = 0) -> OutboxRecord:
    occurred = datetime.now(UTC) - timedelta(minutes=minutes_ago)
    return OutboxWriter.to_record(TicketOpened(ticket_id=f"t-{seq}", occurred_at=occurred))


repository = OutboxRepository()


# ============================================================================
# Fetching
# ============================================================================


class TestFetchPending:
    async def test_returns_pending_oldest_first(self, db_session):
        """Pending records come back in creation order."""
        newest = make_record(1, minutes_ago=1)
        oldest = make_record(2, minutes_ago=30)
        middle = make_record(3, minutes_ago=10)
        await repository.add_many(db_session, [newest, oldest, middle])
        await db_session.commit()

        records = await repository.fetch_pending(db_session, batch_size=10)

        assert [r.event_id for r in records] == [oldest.event_id, middle.event_id, newest.event_id]

    async def test_respects_batch_size(self, db_session):
        await repository.add_many(db_session, [make_record(i, minutes_ago=i) for i in range(5)])
        await db_session.commit()

        records = await repository.fetch_pending(db_session, batch_size=2)

        assert len(records) == 2

    async def test_skips_published_and_failed(self, db_session):
        pending, published, failed = make_record(1), make_record(2), make_record(3)
        published.mark_published()
        failed.register_failure("boom", max_retry_count=1)
        await repository.add_many(db_session, [pending, published, failed])
        await db_session.commit()

        records = await repository.fetch_pending(db_session)

        assert [r.event_id for r in records] == [pending.event_id]

    async def test_get_by_event_id(self, db_session):
        record = make_record(1)
        await repository.add(db_session, record)
        await db_session.commit()

        assert await repository.get_by_event_id(db_session, record.event_id) is record
        assert await repository.get_by_event_id(db_session, uuid.uuid4()) is None


# ============================================================================
# Operator tooling
# ============================================================================


class TestOperatorQueries:
    async def test_count_by_status_includes_every_status(self, db_session):
        published = make_record(1)
        published.mark_published()
        await repository.add_many(db_session, [make_record(2), make_record(3), published])
        await db_session.commit()

        counts = await repository.count_by_status(db_session)

        assert counts == {
            OutboxStatus.PENDING: 2,
            OutboxStatus.PUBLISHED: 1,
            OutboxStatus.FAILED: 0,
        }

    async def test_list_failed(self, db_session):
        failed = make_record(1)
        failed.register_failure("rejected", max_retry_count=1)
        await repository.add_many(db_session, [failed, make_record(2)])
        await db_session.commit()

        records = await repository.list_failed(db_session)

        assert [r.event_id for r in records] == [failed.event_id]
        assert records[0].error_message == "rejected"

    async def test_requeue_failed_resets_retry_budget(self, db_session):
        """Replay puts a Failed record back to Pending with retry_count 0."""
        failed = make_record(1)
        for _ in range(3):
            failed.register_failure("rejected", max_retry_count=3)
        await repository.add(db_session, failed)
        await db_session.commit()

        count = await repository.requeue_failed(db_session, event_ids=[failed.event_id])
        await db_session.commit()
        await db_session.refresh(failed)

        assert count == 1
        assert failed.status is OutboxStatus.PENDING
        assert failed.retry_count == 0
        assert failed.error_message is None

    async def test_requeue_with_empty_selection_is_noop(self, db_session):
        failed = make_record(1)
        failed.register_failure("rejected", max_retry_count=1)
        await repository.add(db_session, failed)
        await db_session.commit()

        assert await repository.requeue_failed(db_session, event_ids=[]) == 0

    async def test_requeue_all_failed(self, db_session):
        records = [make_record(i) for i in range(3)]
        for record in records[:2]:
            record.register_failure("rejected", max_retry_count=1)
        await repository.add_many(db_session, records)
        await db_session.commit()

        assert await repository.requeue_failed(db_session) == 2

    async def test_purge_published_only_deletes_old_published(self, db_session):
        old = make_record(1)
        old.mark_published(datetime.now(UTC) - timedelta(days=10))
        recent = make_record(2)
        recent.mark_published()
        failed = make_record(3)
        failed.register_failure("rejected", max_retry_count=1)
        await repository.add_many(db_session, [old, recent, failed, make_record(4)])
        await db_session.commit()

        deleted = await repository.purge_published(db_session, older_than=timedelta(days=7))
        await db_session.commit()

        assert deleted == 1
        counts = await repository.count_by_status(db_session)
        assert counts[OutboxStatus.PUBLISHED] == 1
        assert counts[OutboxStatus.FAILED] == 1
        assert counts[OutboxStatus.PENDING] == 1
