"""Transactional outbox.

The outbox makes event publishing reliable by:
1. Writing events to a database table in the same transaction as domain changes
2. Publishing the table asynchronously to the message broker
3. Marking records Published once the broker confirmed them

This guarantees at-least-once delivery semantics.
"""

from groupchat_service.infra.events.outbox.models import OutboxRecord, OutboxStatus
from groupchat_service.infra.events.outbox.processor import BatchResult, OutboxPublisher
from groupchat_service.infra.events.outbox.repository import OutboxRepository
from groupchat_service.infra.events.outbox.writer import (
    OutboxUnitOfWork,
    OutboxWriter,
    unit_of_work,
)

__all__ = [
    "BatchResult",
    "OutboxPublisher",
    "OutboxRecord",
    "OutboxRepository",
    "OutboxStatus",
    "OutboxUnitOfWork",
    "OutboxWriter",
    "unit_of_work",
]
