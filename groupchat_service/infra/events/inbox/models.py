"""Idempotency ledger of consumed events.

A row is inserted in the same transaction as the handler's side effects.
Its presence means the event's effect has been applied, so a redelivery of
the same ``event_id`` is acknowledged without running the handler again.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from groupchat_service.core.database.base import Base, UUIDPKMixin, utcnow


class ProcessedEvent(Base, UUIDPKMixin):
    """Ledger entry for one processed event.

    Attributes:
        id: Storage-internal primary key
        event_id: Identifier of the consumed event (unique)
        event_type: Event type name, for diagnostics
        processed_at: When the handler's effect was committed
    """

    __tablename__ = "processed_events"

    event_id: Mapped[uuid.UUID] = mapped_column(
        unique=True,
        nullable=False,
        comment="Consumed event identifier",
    )
    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Event type name",
    )
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
        comment="When the event was processed (UTC)",
    )

    def __repr__(self) -> str:
        return f"ProcessedEvent(event_id={self.event_id}, event_type={self.event_type!r})"


__all__ = ["ProcessedEvent"]
