"""Publishing to durable direct exchanges with publisher confirms."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika import DeliveryMode, ExchangeType
from aio_pika.exceptions import AMQPError, ChannelInvalidStateError

from groupchat_service.core.exceptions import PublishError
from groupchat_service.infra.messaging.conventions import CONTENT_TYPE_JSON
from groupchat_service.infra.metrics.prometheus import rabbitmq_messages_published_total

if TYPE_CHECKING:
    from datetime import datetime

    from aio_pika.abc import AbstractChannel, AbstractExchange

    from groupchat_service.infra.messaging.connection import BrokerConnectionManager

logger = logging.getLogger(__name__)


class RabbitPublisher:
    """Publishes persistent JSON messages on one dedicated channel.

    Exchanges are declared (durable, direct) the first time they are used
    on a channel. A channel that breaks is dropped and reopened on the
    next publish.

    Args:
        connection_manager: Shared broker connection.
        publisher_confirms: Wait for the broker to confirm each publish.
        timeout: Seconds to wait for a confirm.
    """

    def __init__(
        self,
        connection_manager: BrokerConnectionManager,
        *,
        publisher_confirms: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._manager = connection_manager
        self._publisher_confirms = publisher_confirms
        self._timeout = timeout
        self._channel: AbstractChannel | None = None
        self._exchanges: dict[str, AbstractExchange] = {}
        self._lock = asyncio.Lock()

    async def _get_exchange(self, name: str) -> AbstractExchange:
        async with self._lock:
            if self._channel is None or self._channel.is_closed:
                self._channel = await self._manager.channel(
                    publisher_confirms=self._publisher_confirms,
                )
                self._exchanges.clear()

            exchange = self._exchanges.get(name)
            if exchange is None:
                exchange = await self._channel.declare_exchange(
                    name,
                    ExchangeType.DIRECT,
                    durable=True,
                )
                self._exchanges[name] = exchange
            return exchange

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
        """Publish one message and wait for the broker confirm.

        Raises:
            BrokerConnectionError: If no connection or channel can be opened.
            PublishError: If the broker rejected the message, the channel
                broke, or the confirm did not arrive in time.
        """
        message = aio_pika.Message(
            body=body,
            content_type=CONTENT_TYPE_JSON,
            delivery_mode=DeliveryMode.PERSISTENT,
            message_id=message_id,
            type=message_type or routing_key,
            timestamp=timestamp,
            headers=headers or {},
        )
        try:
            target = await self._get_exchange(exchange)
            await target.publish(message, routing_key=routing_key, timeout=self._timeout)
        except (AMQPError, ChannelInvalidStateError, OSError, TimeoutError) as exc:
            await self._reset_channel()
            msg = f"Publish to '{exchange}' with key '{routing_key}' failed: {exc!r}"
            raise PublishError(
                msg,
                extra={
                    "exchange": exchange,
                    "routing_key": routing_key,
                    "message_id": message_id,
                },
            ) from exc

        rabbitmq_messages_published_total.labels(exchange=exchange).inc()

    async def _reset_channel(self) -> None:
        async with self._lock:
            channel, self._channel = self._channel, None
            self._exchanges.clear()
        if channel is not None and not channel.is_closed:
            try:
                await channel.close()
            except (AMQPError, ChannelInvalidStateError, OSError):
                logger.debug("Ignoring error while closing a broken channel", exc_info=True)

    async def close(self) -> None:
        await self._reset_channel()


__all__ = ["RabbitPublisher"]
