"""Database infrastructure: engine, sessions and lifecycle."""

from groupchat_service.infra.database.session import (
    close_database,
    create_session_factory,
    create_tables,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "close_database",
    "create_session_factory",
    "create_tables",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
