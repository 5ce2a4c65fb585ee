"""Runs the outbox publisher and the event consumer side by side.

Both background tasks share one stop event and one broker connection
manager. The pipeline ends when the stop event is set (SIGINT/SIGTERM)
or when one of the tasks crashes; the other task is then asked to stop
and given ``shutdown_timeout`` seconds before it is cancelled.

Usage:
    pipeline = build_pipeline()
    stop_event = asyncio.Event()
    install_signal_handlers(asyncio.get_running_loop(), stop_event)
    await pipeline.run(stop_event)
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from groupchat_service.core.settings import (
    get_consumer_settings,
    get_outbox_settings,
    get_rabbit_settings,
)
from groupchat_service.infra.database import get_session_factory
from groupchat_service.infra.events.outbox.processor import OutboxPublisher
from groupchat_service.infra.messaging.connection import BrokerConnectionManager
from groupchat_service.infra.messaging.consumer import EventConsumer, QueueBinding
from groupchat_service.infra.messaging.publisher import RabbitPublisher

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from groupchat_service.infra.messaging.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)


class EventPipeline:
    """Outbox publisher and event consumer run as one unit.

    Args:
        publisher: Outbox publisher, or None to run without one.
        consumer: Event consumer, or None to run without one.
        connection_manager: Closed once both tasks are done.
        shutdown_timeout: Seconds a task gets to finish after the stop event.
    """

    def __init__(
        self,
        publisher: OutboxPublisher | None = None,
        consumer: EventConsumer | None = None,
        *,
        connection_manager: BrokerConnectionManager | None = None,
        shutdown_timeout: float = 30.0,
    ) -> None:
        self.publisher = publisher
        self.consumer = consumer
        self.shutdown_timeout = shutdown_timeout
        self._connection_manager = connection_manager

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set or a task crashes.

        Raises:
            Exception: The error of the first task that crashed, after the
                other task has been stopped.
        """
        tasks: list[asyncio.Task[None]] = []
        if self.publisher is not None:
            tasks.append(asyncio.create_task(self.publisher.run(stop_event), name="outbox-publisher"))
        if self.consumer is not None:
            tasks.append(asyncio.create_task(self.consumer.run(stop_event), name="event-consumer"))
        if not tasks:
            logger.warning("Event pipeline has nothing to run")
            return

        logger.info("Event pipeline started", extra={"tasks": [t.get_name() for t in tasks]})
        stop_waiter = asyncio.create_task(stop_event.wait(), name="stop-event")
        crash: BaseException | None = None
        try:
            done, _ = await asyncio.wait([*tasks, stop_waiter], return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is stop_waiter or task.cancelled():
                    continue
                exc = task.exception()
                if exc is not None and crash is None:
                    crash = exc
                    logger.error(
                        "Event pipeline task crashed, stopping",
                        extra={"task": task.get_name(), "error": str(exc)},
                        exc_info=exc,
                    )
            stop_event.set()
            await self._drain(tasks)
        finally:
            stop_waiter.cancel()
            if self._connection_manager is not None:
                await self._connection_manager.close()
            logger.info("Event pipeline stopped")

        if crash is not None:
            raise crash

    async def _drain(self, tasks: list[asyncio.Task[None]]) -> None:
        pending = [task for task in tasks if not task.done()]
        if not pending:
            return
        _, still_running = await asyncio.wait(pending, timeout=self.shutdown_timeout)
        for task in still_running:
            logger.warning(
                "Event pipeline task did not stop in time, cancelling",
                extra={"task": task.get_name(), "timeout": self.shutdown_timeout},
            )
            task.cancel()
        results = await asyncio.gather(*pending, return_exceptions=True)
        for task, result in zip(pending, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Event pipeline task failed during shutdown",
                    extra={"task": task.get_name(), "error": str(result)},
                    exc_info=result,
                )


def install_signal_handlers(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT and SIGTERM."""

    def _request_stop(sig: signal.Signals) -> None:
        logger.info("Shutdown signal received", extra={"signal": sig.name})
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, sig)
        except NotImplementedError:
            # Event loops without signal support (Windows)
            signal.signal(sig, lambda s, _f: loop.call_soon_threadsafe(_request_stop, signal.Signals(s)))


def build_pipeline(
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    connection_manager: BrokerConnectionManager | None = None,
    handlers: EventHandlerRegistry | None = None,
    run_publisher: bool | None = None,
    run_consumer: bool | None = None,
) -> EventPipeline:
    """Assemble the pipeline from settings.

    ``run_publisher``/``run_consumer`` default to the ``enabled`` flags of
    the outbox and consumer settings.
    """
    rabbit = get_rabbit_settings()
    outbox = get_outbox_settings()
    consumer_settings = get_consumer_settings()

    session_factory = session_factory or get_session_factory()
    manager = connection_manager or BrokerConnectionManager(rabbit)

    if run_publisher is None:
        run_publisher = outbox.enabled
    if run_consumer is None:
        run_consumer = consumer_settings.enabled

    publisher: OutboxPublisher | None = None
    if run_publisher:
        publisher = OutboxPublisher(
            RabbitPublisher(
                manager,
                publisher_confirms=rabbit.publisher_confirms,
                timeout=rabbit.publish_timeout,
            ),
            session_factory,
            exchange_name=outbox.exchange_name,
            batch_size=outbox.batch_size,
            poll_interval=outbox.poll_interval,
            max_retry_count=outbox.max_retry_count,
            error_message_max_length=outbox.error_message_max_length,
        )

    consumer: EventConsumer | None = None
    if run_consumer:
        if handlers is None:
            from groupchat_service.features.chat.handlers import chat_handlers

            handlers = chat_handlers
        consumer = EventConsumer(
            manager,
            session_factory,
            handlers,
            queue_name=consumer_settings.queue_name,
            bindings=QueueBinding.from_mapping(consumer_settings.bindings),
            prefetch_count=consumer_settings.prefetch_count,
            requeue_on_failure=consumer_settings.requeue_on_failure,
            reconnect_interval=rabbit.reconnect_interval,
        )

    return EventPipeline(
        publisher,
        consumer,
        connection_manager=manager,
        shutdown_timeout=outbox.shutdown_timeout,
    )


__all__ = ["EventPipeline", "build_pipeline", "install_signal_handlers"]
