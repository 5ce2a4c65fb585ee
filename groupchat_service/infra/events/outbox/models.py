"""OutboxRecord SQLAlchemy model for the transactional outbox pattern.

The outbox table stores events that still have to reach the message broker.
Rows are written in the same transaction as the aggregate change that
produced them, so either both exist or neither does.

The publisher moves each row from ``Pending`` to ``Published`` once the
broker confirmed it, or to ``Failed`` after too many failed attempts.
Both are terminal: only an operator replay puts a ``Failed`` row back to
``Pending``.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from groupchat_service.core.database.base import Base, CreatedAtMixin, UUIDPKMixin, utcnow
from groupchat_service.core.exceptions import InvalidStatusTransition


class OutboxStatus(enum.StrEnum):
    PENDING = "Pending"
    PUBLISHED = "Published"
    FAILED = "Failed"


class OutboxRecord(Base, UUIDPKMixin, CreatedAtMixin):
    """One domain event waiting for, or done with, broker delivery.

    Attributes:
        id: Storage-internal primary key
        event_id: Identifier of the domain event (unique, one record per event)
        event_type: Event type name, used as the routing key
        event_version: Schema version of the payload
        payload: JSON envelope of the event
        status: Pending, Published or Failed
        created_at: When the event occurred; publishing order is oldest first
        published_at: When the broker confirmed the publish
        retry_count: Failed publish attempts so far
        error_message: Last publish error, truncated
    """

    __tablename__ = "outbox_messages"

    event_id: Mapped[uuid.UUID] = mapped_column(
        unique=True,
        nullable=False,
        comment="Domain event identifier",
    )
    event_type: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment="Event type name and routing key",
    )
    event_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Event schema version",
    )
    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON-serialized event envelope",
    )
    status: Mapped[OutboxStatus] = mapped_column(
        Enum(
            OutboxStatus,
            name="outbox_status",
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        default=OutboxStatus.PENDING,
        comment="Delivery status",
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the broker confirmed the publish",
    )
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of failed publish attempts",
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Last publish error",
    )

    __table_args__ = (
        # Pending rows in publishing order
        Index("ix_outbox_messages_status_created_at", "status", "created_at"),
    )

    def headers(self) -> dict[str, str]:
        """AMQP headers published next to the payload."""
        return {
            "x-event-type": self.event_type,
            "x-event-version": str(self.event_version),
            "x-event-id": str(self.event_id),
        }

    # ──────────────────────────────────────────────────────────────
    # Status transitions
    # ──────────────────────────────────────────────────────────────

    @property
    def is_pending(self) -> bool:
        return self.status == OutboxStatus.PENDING

    def mark_published(self, now: datetime | None = None) -> None:
        """Record a confirmed publish.

        Raises:
            InvalidStatusTransition: If the record is not Pending.
        """
        self._require_pending("Published")
        self.status = OutboxStatus.PUBLISHED
        self.published_at = now or utcnow()

    def register_failure(
        self,
        error: str,
        *,
        max_retry_count: int,
        max_error_length: int = 1000,
    ) -> bool:
        """Count a failed publish attempt.

        Returns:
            True when the record has now been quarantined as Failed.

        Raises:
            InvalidStatusTransition: If the record is not Pending.
        """
        self._require_pending("Failed")
        self.retry_count = (self.retry_count or 0) + 1
        self.error_message = error[:max_error_length]
        if self.retry_count >= max_retry_count:
            self.status = OutboxStatus.FAILED
            return True
        return False

    def _require_pending(self, target: str) -> None:
        if self.status != OutboxStatus.PENDING:
            msg = f"Cannot move outbox record from {self.status} to {target}"
            raise InvalidStatusTransition(
                msg,
                extra={"event_id": str(self.event_id), "status": str(self.status)},
            )

    def __repr__(self) -> str:
        return (
            f"OutboxRecord("
            f"event_id={self.event_id}, "
            f"event_type={self.event_type!r}, "
            f"status={self.status}, "
            f"retry_count={self.retry_count}"
            f")"
        )


__all__ = ["OutboxRecord", "OutboxStatus"]
