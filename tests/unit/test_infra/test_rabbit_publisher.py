"""Tests for the confirmed RabbitMQ publisher."""
from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from aio_pika import DeliveryMode, ExchangeType
from aio_pika.exceptions import ChannelInvalidStateError

from groupchat_service.core.exceptions import BrokerConnectionError, PublishError
from groupchat_service.infra.messaging.publisher import RabbitPublisher


@pytest.fixture
def exchange() -> MagicMock:
    exchange = MagicMock()
    exchange.publish = AsyncMock()
    return exchange


@pytest.fixture
def channel(exchange) -> MagicMock:
    channel = MagicMock()
    channel.is_closed = False
    channel.declare_exchange = AsyncMock(return_value=exchange)
    channel.close = AsyncMock()
    return channel


@pytest.fixture
def manager(channel) -> MagicMock:
    manager = MagicMock()
    manager.channel = AsyncMock(return_value=channel)
    return manager


async def publish(publisher: RabbitPublisher, **overrides) -> None:
    kwargs = {
        "message_id": "7d0c5c1e-0000-4000-8000-000000000001",
        "message_type": "GroupCreatedEvent",
        "timestamp": datetime(2026, 1, 13, 20, 37, 31, tzinfo=UTC),
        "headers": {"x-event-type": "GroupCreatedEvent"},
    }
    kwargs.update(overrides)
    await publisher.publish("groups-events", "GroupCreatedEvent", b'{"eventId":"x"}', **kwargs)


class TestRabbitPublisher:
    async def test_publishes_persistent_message(self, manager, exchange):
        publisher = RabbitPublisher(manager, timeout=3.0)

        await publish(publisher)

        message = exchange.publish.await_args.args[0]
        assert exchange.publish.await_args.kwargs == {
            "routing_key": "GroupCreatedEvent",
            "timeout": 3.0,
        }
        assert message.body == b'{"eventId":"x"}'
        assert message.delivery_mode == DeliveryMode.PERSISTENT
        assert message.content_type == "application/json"
        assert message.message_id == "7d0c5c1e-0000-4000-8000-000000000001"
        assert message.type == "GroupCreatedEvent"
        assert message.headers["x-event-type"] == "GroupCreatedEvent"

    async def test_declares_durable_direct_exchange_once(self, manager, channel):
        publisher = RabbitPublisher(manager)

        await publish(publisher)
        await publish(publisher)

        channel.declare_exchange.assert_awaited_once_with(
            "groups-events",
            ExchangeType.DIRECT,
            durable=True,
        )
        manager.channel.assert_awaited_once_with(publisher_confirms=True)

    async def test_counts_published_messages(self, manager, metric_value):
        before = metric_value("rabbitmq_messages_published_total", exchange="groups-events")

        await publish(RabbitPublisher(manager))

        after = metric_value("rabbitmq_messages_published_total", exchange="groups-events")
        assert after - before == 1

    @pytest.mark.parametrize("error", [TimeoutError(), OSError("connection reset")])
    async def test_failed_publish_raises_and_resets_channel(
        self, manager, channel, exchange, error
    ):
        exchange.publish.side_effect = error
        publisher = RabbitPublisher(manager)

        with pytest.raises(PublishError) as exc_info:
            await publish(publisher)

        assert exc_info.value.extra["routing_key"] == "GroupCreatedEvent"
        channel.close.assert_awaited_once()

        exchange.publish.side_effect = None
        await publish(publisher)
        assert manager.channel.await_count == 2

    async def test_invalid_channel_state_becomes_publish_error(self, manager, channel, exchange):
        exchange.publish.side_effect = ChannelInvalidStateError("No active transport in channel")
        publisher = RabbitPublisher(manager)

        with pytest.raises(PublishError) as exc_info:
            await publish(publisher)

        assert isinstance(exc_info.value.__cause__, ChannelInvalidStateError)
        channel.close.assert_awaited_once()

        exchange.publish.side_effect = None
        await publish(publisher)
        assert manager.channel.await_count == 2

    async def test_closed_channel_is_reopened(self, manager, channel):
        publisher = RabbitPublisher(manager)
        await publish(publisher)

        channel.is_closed = True
        await publish(publisher)

        assert manager.channel.await_count == 2
        assert channel.declare_exchange.await_count == 2

    async def test_connection_errors_propagate_unchanged(self, manager):
        manager.channel.side_effect = BrokerConnectionError("broker down")

        with pytest.raises(BrokerConnectionError):
            await publish(RabbitPublisher(manager))

    async def test_close_closes_channel(self, manager, channel):
        publisher = RabbitPublisher(manager)
        await publish(publisher)

        await publisher.close()

        channel.close.assert_awaited_once()
