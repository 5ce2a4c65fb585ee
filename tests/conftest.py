"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: shared in-memory SQLite engine, session factory, session
    - Broker Fixtures: in-memory broker doubles for the publisher and consumer
    - Utility Fixtures: metric readers and event helpers

All tests run without external infrastructure: the database is SQLite
through aiosqlite and RabbitMQ is replaced by doubles or AsyncMocks.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

# Ensure tests run without external infrastructure
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite and all tables.

    ``StaticPool`` keeps a single connection, so every session created by
    the session factory sees the same in-memory database.

    Yields:
        Async SQLAlchemy engine with the schema created.
    """
    from groupchat_service.infra.database.session import create_tables

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the service's own."""
    from groupchat_service.infra.database.session import create_session_factory

    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a session for direct database assertions.

    Example:
        async def test_records(db_session):
            counts = await OutboxRepository().count_by_status(db_session)
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Broker Fixtures
# ============================================================================


@dataclass
class PublishedMessage:
    exchange: str
    routing_key: str
    body: bytes
    message_id: str
    message_type: str | None
    timestamp: datetime | None
    headers: dict[str, Any]


@dataclass
class FakeBroker:
    """In-memory stand-in for ``RabbitPublisher``.

    ``failures`` holds exceptions raised by the next publish calls, one per
    call, before publishes start succeeding again.
    """

    published: list[PublishedMessage] = field(default_factory=list)
    failures: list[BaseException] = field(default_factory=list)
    fail_always: BaseException | None = None
    calls: int = 0

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        body: bytes,
        *,
        message_id: str,
        message_type: str | None = None,
        timestamp: datetime | None = None,
        headers: dict[str, Any] | None = None,
    ) -> None:
        self.calls += 1
        if self.fail_always is not None:
            raise self.fail_always
        if self.failures:
            raise self.failures.pop(0)
        self.published.append(
            PublishedMessage(
                exchange=exchange,
                routing_key=routing_key,
                body=body,
                message_id=message_id,
                message_type=message_type,
                timestamp=timestamp,
                headers=headers or {},
            ),
        )


@pytest.fixture
def fake_broker() -> FakeBroker:
    """Broker double recording every confirmed publish."""
    return FakeBroker()


class FakeIncomingMessage:
    """Minimal ``AbstractIncomingMessage`` with awaitable ack/nack."""

    def __init__(
        self,
        body: bytes,
        *,
        routing_key: str | None = None,
        message_id: str | None = None,
    ) -> None:
        self.body = body
        self.routing_key = routing_key
        self.message_id = message_id
        self.ack = AsyncMock()
        self.nack = AsyncMock()
        self.reject = AsyncMock()


@pytest.fixture
def make_message():
    """Build incoming messages from published ones or raw bodies.

    Example:
        message = make_message(fake_broker.published[0])
        await consumer.on_message(message)
    """

    def _make(
        source: PublishedMessage | bytes,
        *,
        routing_key: str | None = None,
    ) -> FakeIncomingMessage:
        if isinstance(source, PublishedMessage):
            return FakeIncomingMessage(
                source.body,
                routing_key=source.routing_key,
                message_id=source.message_id,
            )
        return FakeIncomingMessage(source, routing_key=routing_key)

    return _make


# ============================================================================
# Utility Fixtures
# ============================================================================


@pytest.fixture
def metric_value():
    """Read a sample from the service metrics registry (0.0 when absent).

    Example:
        before = metric_value("outbox_messages_published_total", event_type="X")
    """
    from groupchat_service.infra.metrics.prometheus import REGISTRY

    def _read(name: str, **labels: str) -> float:
        return REGISTRY.get_sample_value(name, labels) or 0.0

    return _read
