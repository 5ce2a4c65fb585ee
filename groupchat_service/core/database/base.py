"""Declarative base and shared column mixins.

Every table of the service (business aggregates, the outbox and the
idempotency ledger) hangs off the same ``Base.metadata`` so they live in
one database and can be written in one transaction.

Example:
    class Group(Base, UUIDPKMixin):
        __tablename__ = "groups"
        name: Mapped[str] = mapped_column(String(100))
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Consistent naming convention for database constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base with constraint naming and automatic table names.

    The automatic table name (lowercased class name) can be overridden by
    setting ``__tablename__`` explicitly on the model class.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


class UUIDPKMixin:
    """UUID v4 primary key.

    Provides:
        id: UUID v4 primary key (random)
    """

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        comment="UUID v4 primary key",
    )


class CreatedAtMixin:
    """Creation timestamp set on the Python side.

    Python-side defaults keep the value available before flush, which the
    outbox relies on for ordering records created in the same transaction.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
        comment="Creation timestamp (UTC)",
    )


__all__ = ["NAMING_CONVENTION", "Base", "CreatedAtMixin", "UUIDPKMixin", "utcnow"]
