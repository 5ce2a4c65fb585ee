"""Running async command bodies from synchronous click callbacks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

T = TypeVar("T")


def coro(f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """
    Decorator that makes an async function synchronous for Click.

    The database engine is disposed before the event loop closes, so each
    command starts and ends with a clean connection pool.

    Usage:
        @outbox.command()
        @coro
        async def status():
            counts = await repository.count_by_status(session)
    """

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        return asyncio.run(_with_cleanup(f(*args, **kwargs)))

    return wrapper


async def _with_cleanup(awaitable: Awaitable[T]) -> T:
    from groupchat_service.infra.database import close_database

    try:
        return await awaitable
    finally:
        await close_database()
