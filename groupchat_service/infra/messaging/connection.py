"""Shared, auto-recovering RabbitMQ connection.

One ``BrokerConnectionManager`` owns at most one physical connection per
service instance. The outbox publisher and the event consumer each open
their own channel on top of it. Recovery after a dropped connection is
handled by aio-pika's robust connection with a fixed reconnect interval;
if the connection was closed for good, the next ``get_connection()`` call
opens a new one.

Usage:
    manager = BrokerConnectionManager(get_rabbit_settings())
    channel = await manager.channel(prefetch_count=1)
    ...
    await manager.close()
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika.exceptions import AMQPError

from groupchat_service.core.exceptions import BrokerConnectionError
from groupchat_service.infra.metrics.prometheus import rabbitmq_connection_attempts_total

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aio_pika.abc import AbstractRobustChannel, AbstractRobustConnection

    from groupchat_service.core.settings.rabbit import RabbitSettings

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Connection states reported by ``BrokerConnectionManager.health``."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class BrokerConnectionManager:
    """Lazily created, shared broker connection.

    Concurrent callers of ``get_connection()`` are serialized by an
    ``asyncio.Lock``, so only one physical connection is ever opened.

    Args:
        settings: RabbitMQ connection settings.
        connect: Connection factory, ``aio_pika.connect_robust`` by default.
    """

    def __init__(
        self,
        settings: RabbitSettings,
        *,
        connect: Callable[..., Awaitable[AbstractRobustConnection]] | None = None,
    ) -> None:
        self._settings = settings
        self._connect = connect or aio_pika.connect_robust
        self._connection: AbstractRobustConnection | None = None
        self._lock = asyncio.Lock()

    @property
    def settings(self) -> RabbitSettings:
        return self._settings

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def get_connection(self) -> AbstractRobustConnection:
        """Return the live shared connection, opening it on first use.

        Raises:
            BrokerConnectionError: If the broker cannot be reached.
        """
        if self.is_connected:
            return self._connection  # type: ignore[return-value]

        async with self._lock:
            if self.is_connected:
                return self._connection  # type: ignore[return-value]
            if self._connection is not None:
                logger.warning(
                    "Broker connection closed, opening a new one",
                    extra={"host": self._settings.host},
                )
            self._connection = await self._open()
            return self._connection

    async def _open(self) -> AbstractRobustConnection:
        settings = self._settings
        logger.info(
            "Connecting to RabbitMQ",
            extra={"url": settings.safe_url, "connection_name": settings.connection_name},
        )
        try:
            connection = await asyncio.wait_for(
                self._connect(
                    settings.get_url(),
                    timeout=settings.connection_timeout,
                    client_properties={"connection_name": settings.connection_name},
                    reconnect_interval=settings.reconnect_interval,
                    heartbeat=settings.heartbeat,
                ),
                timeout=settings.connection_timeout,
            )
        except (AMQPError, OSError, TimeoutError) as exc:
            rabbitmq_connection_attempts_total.labels(result="failure").inc()
            logger.error(
                "Failed to connect to RabbitMQ",
                extra={"url": settings.safe_url, "error": str(exc)},
            )
            msg = f"Could not connect to RabbitMQ at {settings.host}:{settings.port}"
            raise BrokerConnectionError(
                msg,
                extra={"host": settings.host, "port": settings.port},
            ) from exc

        rabbitmq_connection_attempts_total.labels(result="success").inc()
        logger.info("Connected to RabbitMQ", extra={"host": settings.host})
        return connection

    async def channel(
        self,
        *,
        publisher_confirms: bool = True,
        prefetch_count: int | None = None,
    ) -> AbstractRobustChannel:
        """Open a new logical channel on the shared connection.

        Args:
            publisher_confirms: Wait for broker confirms on publish.
            prefetch_count: Apply QoS when given (consumers).

        Raises:
            BrokerConnectionError: If the connection or channel cannot be opened.
        """
        connection = await self.get_connection()
        try:
            channel = await connection.channel(publisher_confirms=publisher_confirms)
            if prefetch_count is not None:
                await channel.set_qos(prefetch_count=prefetch_count)
        except (AMQPError, OSError) as exc:
            msg = "Could not open a RabbitMQ channel"
            raise BrokerConnectionError(msg, extra={"error": str(exc)}) from exc
        return channel  # type: ignore[return-value]

    async def close(self) -> None:
        """Close the shared connection. Safe to call more than once."""
        async with self._lock:
            connection, self._connection = self._connection, None
        if connection is not None and not connection.is_closed:
            await connection.close()
            logger.info("RabbitMQ connection closed")

    async def health(self) -> dict[str, Any]:
        """Report connection health for CLI and monitoring.

        Opens the connection if needed; never raises.
        """
        if not self._settings.is_configured:
            return {
                "configured": False,
                "healthy": False,
                "state": ConnectionState.DISCONNECTED.value,
            }
        try:
            await self.get_connection()
        except BrokerConnectionError as exc:
            return {
                "configured": True,
                "healthy": False,
                "state": ConnectionState.DISCONNECTED.value,
                "error": exc.detail,
            }
        return {
            "configured": True,
            "healthy": True,
            "state": ConnectionState.CONNECTED.value,
            "info": f"{self._settings.host}:{self._settings.port}",
        }


__all__ = ["BrokerConnectionManager", "ConnectionState"]
