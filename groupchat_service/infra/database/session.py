"""Async database engine and session management.

The engine and session factory are created lazily from ``DatabaseSettings``
on first use. Background components (outbox publisher, event consumer)
receive the session factory as a collaborator instead of importing the
module-level one, which keeps them testable against any engine.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from groupchat_service.core.database import Base
from groupchat_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used everywhere in the service.

    Objects stay usable after commit (``expire_on_commit=False``) and
    nothing is flushed implicitly, so a unit of work decides when SQL runs.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        db_settings = get_db_settings()
        kwargs = db_settings.engine_kwargs()
        kwargs["echo"] = kwargs["echo"] or get_app_settings().debug
        _engine = create_async_engine(db_settings.get_sqlalchemy_url(), **kwargs)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            counts = await OutboxRepository().count_by_status(session)
    """
    async with get_session_factory()() as session:
        yield session


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all known tables that do not exist yet.

    Migrations are the normal path; this serves local runs and tests.
    """
    # Register every model on Base.metadata
    import groupchat_service.features.chat.models  # noqa: F401
    import groupchat_service.features.groups.models  # noqa: F401
    import groupchat_service.infra.events.inbox.models  # noqa: F401
    import groupchat_service.infra.events.outbox.models  # noqa: F401

    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    """Check connectivity and optionally create tables.

    Raises:
        sqlalchemy.exc.OperationalError: If the database is unreachable.
    """
    engine = get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    if get_db_settings().create_tables:
        await create_tables(engine)

    logger.info("Database connection initialized", extra={"dialect": engine.dialect.name})


async def close_database() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


__all__ = [
    "close_database",
    "create_session_factory",
    "create_tables",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
