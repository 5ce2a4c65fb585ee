"""Tests for running the publisher and consumer together."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from groupchat_service.core.exceptions import BrokerConnectionError
from groupchat_service.core.settings import get_rabbit_settings
from groupchat_service.features.chat.handlers import chat_handlers
from groupchat_service.infra.messaging.consumer import EventConsumer, QueueBinding
from groupchat_service.workers.runner import EventPipeline, build_pipeline


class LoopingTask:
    """Stand-in for a component whose ``run`` waits for the stop event."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.stopped = False

    async def run(self, stop_event: asyncio.Event) -> None:
        self.started.set()
        await stop_event.wait()
        self.stopped = True


class CrashingTask:
    async def run(self, stop_event: asyncio.Event) -> None:
        await asyncio.sleep(0)
        raise RuntimeError("consumer channel lost")


class StubbornTask:
    cancelled = False

    async def run(self, stop_event: asyncio.Event) -> None:
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            StubbornTask.cancelled = True
            raise


class TestEventPipeline:
    async def test_runs_until_stop_event(self):
        publisher, consumer = LoopingTask(), LoopingTask()
        manager = AsyncMock()
        pipeline = EventPipeline(publisher, consumer, connection_manager=manager)
        stop_event = asyncio.Event()

        task = asyncio.create_task(pipeline.run(stop_event))
        await asyncio.wait_for(publisher.started.wait(), timeout=1)
        await asyncio.wait_for(consumer.started.wait(), timeout=1)
        stop_event.set()
        await asyncio.wait_for(task, timeout=1)

        assert publisher.stopped
        assert consumer.stopped
        manager.close.assert_awaited_once()

    async def test_crash_stops_the_other_task_and_propagates(self):
        publisher = LoopingTask()
        pipeline = EventPipeline(publisher, CrashingTask())
        stop_event = asyncio.Event()

        with pytest.raises(RuntimeError, match="consumer channel lost"):
            await asyncio.wait_for(pipeline.run(stop_event), timeout=1)

        assert stop_event.is_set()
        assert publisher.stopped

    async def test_task_ignoring_stop_is_cancelled(self):
        pipeline = EventPipeline(StubbornTask(), shutdown_timeout=0.05)
        stop_event = asyncio.Event()
        stop_event.set()

        await asyncio.wait_for(pipeline.run(stop_event), timeout=1)

        assert StubbornTask.cancelled

    async def test_unreachable_broker_does_not_stop_publisher(self, session_factory):
        publisher = LoopingTask()
        manager = MagicMock()
        manager.channel = AsyncMock(side_effect=BrokerConnectionError("Broker unavailable"))
        manager.close = AsyncMock()
        consumer = EventConsumer(
            manager,
            session_factory,
            chat_handlers,
            queue_name="chat-service.groups-events",
            bindings=[QueueBinding("groups-events", ("GroupCreatedEvent",))],
            reconnect_interval=0.01,
        )
        pipeline = EventPipeline(publisher, consumer, connection_manager=manager)
        stop_event = asyncio.Event()

        task = asyncio.create_task(pipeline.run(stop_event))
        await asyncio.wait_for(publisher.started.wait(), timeout=1)
        await asyncio.sleep(0.05)

        assert not task.done()
        assert manager.channel.await_count >= 2

        stop_event.set()
        await asyncio.wait_for(task, timeout=1)
        assert publisher.stopped

    async def test_nothing_to_run(self):
        await EventPipeline().run(asyncio.Event())


class TestBuildPipeline:
    async def test_builds_from_flags(self, session_factory):
        manager = AsyncMock()

        pipeline = build_pipeline(
            session_factory=session_factory,
            connection_manager=manager,
            run_publisher=True,
            run_consumer=False,
        )

        assert pipeline.publisher is not None
        assert pipeline.consumer is None

    async def test_consumer_binds_every_handled_event(self, session_factory):
        pipeline = build_pipeline(
            session_factory=session_factory,
            connection_manager=AsyncMock(),
            run_publisher=False,
            run_consumer=True,
        )

        assert pipeline.publisher is None
        assert pipeline.consumer.queue_name == "chat-service.groups-events"
        (binding,) = pipeline.consumer.bindings
        assert binding.exchange == "groups-events"
        assert "GroupCreatedEvent" in binding.routing_keys
        assert pipeline.consumer.reconnect_interval == get_rabbit_settings().reconnect_interval
