"""Unit tests for outbox record status transitions."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import ClassVar

import pytest

from groupchat_service.core.events import DomainEvent
from groupchat_service.core.exceptions import InvalidStatusTransition
from groupchat_service.infra.events.outbox.models import OutboxRecord, OutboxStatus
from groupchat_service.infra.events.outbox.writer import OutboxWriter


class NoteAdded(DomainEvent):
    event_type: ClassVar[str] = "NoteAdded"

    note_id: str


@pytest.fixture
def record() -> OutboxRecord:
    return OutboxWriter.to_record(NoteAdded(note_id="n-1"))


class TestToRecord:
    def test_record_mirrors_event(self):
        """A new record is Pending and carries the event identity."""
        event = NoteAdded(note_id="n-1")

        record = OutboxWriter.to_record(event)

        assert record.event_id == event.event_id
        assert record.event_type == "NoteAdded"
        assert record.event_version == 1
        assert record.status is OutboxStatus.PENDING
        assert record.retry_count == 0
        assert record.published_at is None
        assert record.created_at == event.occurred_at
        assert record.payload == event.serialize()

    def test_headers_carry_type_version_and_id(self, record: OutboxRecord):
        assert record.headers() == {
            "x-event-type": "NoteAdded",
            "x-event-version": "1",
            "x-event-id": str(record.event_id),
        }


class TestStatusTransitions:
    def test_mark_published(self, record: OutboxRecord):
        now = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

        record.mark_published(now)

        assert record.status is OutboxStatus.PUBLISHED
        assert record.published_at == now
        assert not record.is_pending

    def test_published_record_cannot_transition_again(self, record: OutboxRecord):
        record.mark_published()

        with pytest.raises(InvalidStatusTransition):
            record.mark_published()
        with pytest.raises(InvalidStatusTransition):
            record.register_failure("boom", max_retry_count=5)

    def test_failure_below_limit_stays_pending(self, record: OutboxRecord):
        quarantined = record.register_failure("channel closed", max_retry_count=3)

        assert quarantined is False
        assert record.status is OutboxStatus.PENDING
        assert record.retry_count == 1
        assert record.error_message == "channel closed"

    def test_failure_at_limit_becomes_failed(self, record: OutboxRecord):
        """The record is quarantined on its max_retry_count-th failure."""
        results = [record.register_failure(f"attempt {i}", max_retry_count=3) for i in range(3)]

        assert results == [False, False, True]
        assert record.status is OutboxStatus.FAILED
        assert record.retry_count == 3
        assert record.error_message == "attempt 2"

    def test_failed_record_is_terminal(self, record: OutboxRecord):
        record.register_failure("boom", max_retry_count=1)

        with pytest.raises(InvalidStatusTransition, match="Failed to Published"):
            record.mark_published()

    def test_error_message_is_truncated(self, record: OutboxRecord):
        record.register_failure("x" * 5000, max_retry_count=5, max_error_length=100)

        assert len(record.error_message) == 100
