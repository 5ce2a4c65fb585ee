"""Idempotent event consumer.

Each delivery is processed in one database transaction that applies the
handler's effect and inserts the idempotency ledger row. The message is
acknowledged only after that commit, so a crash before the ack leads to a
redelivery that the ledger turns into a no-op.

Outcomes:
- processed: effect and ledger row committed, message acked
- duplicate: ledger already had the event, message acked, handler skipped
- dropped: poison message (undecodable, no eventId, invalid payload), acked
- unhandled: no handler for the event type, acked
- failed: handler or commit raised, message nacked and requeued
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aio_pika import ExchangeType
from aio_pika.exceptions import AMQPError, ChannelInvalidStateError
from opentelemetry import trace
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from groupchat_service.core.events import event_registry
from groupchat_service.core.exceptions import BrokerConnectionError, PoisonMessageError
from groupchat_service.infra.events.inbox.repository import ProcessedEventRepository
from groupchat_service.infra.messaging.envelope import EventEnvelope
from groupchat_service.infra.metrics.prometheus import (
    event_handler_duration_seconds,
    rabbitmq_messages_consumed_total,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractQueue
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from groupchat_service.infra.messaging.connection import BrokerConnectionManager
    from groupchat_service.infra.messaging.handlers import (
        EventHandlerRegistry,
        HandlerRegistration,
    )

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True, slots=True)
class QueueBinding:
    """Routing keys of one exchange bound to the consumer queue."""

    exchange: str
    routing_keys: tuple[str, ...]

    @classmethod
    def from_mapping(cls, bindings: dict[str, Iterable[str]]) -> list[QueueBinding]:
        return [cls(exchange, tuple(keys)) for exchange, keys in bindings.items()]


class ConsumeOutcome(enum.StrEnum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    DROPPED = "dropped"
    UNHANDLED = "unhandled"
    FAILED = "failed"


class EventConsumer:
    """Consumes one durable queue with manual acknowledgment.

    Args:
        connection_manager: Shared broker connection.
        session_factory: Sessions for handler effects and the ledger.
        handlers: Handler registry keyed by event type.
        queue_name: Durable queue to declare and consume.
        bindings: Exchange/routing-key bindings of the queue.
        prefetch_count: Unacknowledged deliveries per channel.
        requeue_on_failure: Requeue deliveries whose processing raised.
        reconnect_interval: Seconds between start attempts while the broker is down.
        ledger: Idempotency ledger repository.
    """

    def __init__(
        self,
        connection_manager: BrokerConnectionManager,
        session_factory: async_sessionmaker[AsyncSession],
        handlers: EventHandlerRegistry,
        *,
        queue_name: str,
        bindings: Sequence[QueueBinding],
        prefetch_count: int = 1,
        requeue_on_failure: bool = True,
        reconnect_interval: float = 10.0,
        ledger: ProcessedEventRepository | None = None,
    ) -> None:
        self.queue_name = queue_name
        self.bindings = tuple(bindings)
        self.prefetch_count = prefetch_count
        self.requeue_on_failure = requeue_on_failure
        self.reconnect_interval = reconnect_interval

        self._manager = connection_manager
        self._session_factory = session_factory
        self._handlers = handlers
        self._ledger = ledger or ProcessedEventRepository()

        self._channel: AbstractChannel | None = None
        self._queue: AbstractQueue | None = None
        self._consumer_tag: str | None = None

    @property
    def is_consuming(self) -> bool:
        return self._consumer_tag is not None

    # ──────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Declare the topology and begin consuming.

        Declarations are idempotent, so every instance declares the same
        exchanges, queue and bindings on start.

        Raises:
            BrokerConnectionError: If no channel can be opened.
            AMQPError: If a declaration fails; the channel is closed first.
        """
        if self.is_consuming:
            return

        channel = await self._manager.channel(
            publisher_confirms=False,
            prefetch_count=self.prefetch_count,
        )
        try:
            queue = await channel.declare_queue(self.queue_name, durable=True)
            for binding in self.bindings:
                exchange = await channel.declare_exchange(
                    binding.exchange,
                    ExchangeType.DIRECT,
                    durable=True,
                )
                for routing_key in binding.routing_keys:
                    await queue.bind(exchange, routing_key=routing_key)
            consumer_tag = await queue.consume(self.on_message, no_ack=False)
        except BaseException:
            await self._close_channel(channel)
            raise

        self._channel = channel
        self._queue = queue
        self._consumer_tag = consumer_tag

        unbound = [
            key
            for binding in self.bindings
            for key in binding.routing_keys
            if key not in self._handlers
        ]
        if unbound:
            logger.warning(
                "Queue bound to event types without a handler",
                extra={"queue": self.queue_name, "event_types": unbound},
            )
        logger.info(
            "Event consumer started",
            extra={
                "queue": self.queue_name,
                "prefetch_count": self.prefetch_count,
                "bindings": {b.exchange: list(b.routing_keys) for b in self.bindings},
            },
        )

    async def stop(self) -> None:
        """Cancel the consumer and close its channel.

        Unacknowledged deliveries go back to the queue.
        """
        queue, tag = self._queue, self._consumer_tag
        channel = self._channel
        self._queue = self._consumer_tag = self._channel = None

        if queue is not None and tag is not None:
            await queue.cancel(tag)
        if channel is not None and not channel.is_closed:
            await channel.close()
        if tag is not None:
            logger.info("Event consumer stopped", extra={"queue": self.queue_name})

    async def run(self, stop_event: asyncio.Event) -> None:
        """Consume until ``stop_event`` is set.

        A broker that is unreachable at startup is retried every
        ``reconnect_interval`` seconds instead of ending the worker.
        """
        while not stop_event.is_set():
            try:
                await self.start()
            except (
                BrokerConnectionError,
                AMQPError,
                ChannelInvalidStateError,
                OSError,
            ) as exc:
                logger.warning(
                    "Event consumer could not start, retrying",
                    extra={
                        "queue": self.queue_name,
                        "retry_in": self.reconnect_interval,
                        "error": str(exc),
                    },
                )
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), self.reconnect_interval)
            else:
                break
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    @staticmethod
    async def _close_channel(channel: AbstractChannel) -> None:
        if channel.is_closed:
            return
        try:
            await channel.close()
        except (AMQPError, ChannelInvalidStateError, OSError) as exc:
            logger.debug("Error closing consumer channel", extra={"error": str(exc)})

    # ──────────────────────────────────────────────────────────────
    # Delivery handling
    # ──────────────────────────────────────────────────────────────

    async def on_message(self, message: AbstractIncomingMessage) -> ConsumeOutcome:
        """Process one delivery, then ack it or nack it with requeue."""
        try:
            outcome = await self.process(message.body, message.routing_key)
        except Exception as exc:
            outcome = ConsumeOutcome.FAILED
            await message.nack(requeue=self.requeue_on_failure)
            logger.warning(
                "Message nacked",
                extra={
                    "queue": self.queue_name,
                    "message_id": message.message_id,
                    "routing_key": message.routing_key,
                    "requeue": self.requeue_on_failure,
                    "error": str(exc) or exc.__class__.__name__,
                },
            )
        else:
            await message.ack()

        rabbitmq_messages_consumed_total.labels(queue=self.queue_name, outcome=outcome).inc()
        return outcome

    async def process(self, body: bytes, routing_key: str | None = None) -> ConsumeOutcome:
        """Apply one message body exactly once.

        Raises:
            Exception: Whatever the handler or the commit raised; the
                transaction is rolled back and nothing is recorded.
        """
        try:
            envelope = EventEnvelope.parse(body, routing_key)
        except PoisonMessageError as exc:
            logger.warning(
                "Dropping poison message",
                extra={"queue": self.queue_name, "error": exc.detail, **exc.extra},
            )
            return ConsumeOutcome.DROPPED

        registration = self._resolve(routing_key, envelope)
        if registration is None:
            logger.info(
                "No handler for event type, acknowledging",
                extra={
                    "event_id": str(envelope.event_id),
                    "event_type": envelope.event_type,
                    "known_type": envelope.event_type in event_registry,
                },
            )
            return ConsumeOutcome.UNHANDLED

        try:
            event = registration.event_class.from_envelope(envelope.data)
        except ValidationError as exc:
            logger.warning(
                "Dropping message with invalid payload",
                extra={
                    "event_id": str(envelope.event_id),
                    "event_type": envelope.event_type,
                    "errors": exc.errors(include_url=False, include_context=False),
                },
            )
            return ConsumeOutcome.DROPPED

        event_type = registration.event_class.get_event_type()
        context = {"event_id": str(envelope.event_id), "event_type": event_type}

        with tracer.start_as_current_span(
            f"consume {event_type}",
            kind=trace.SpanKind.CONSUMER,
            attributes={
                "messaging.system": "rabbitmq",
                "messaging.destination.name": self.queue_name,
                "messaging.message.id": str(envelope.event_id),
            },
        ):
            started = time.perf_counter()
            try:
                return await self._apply(registration, envelope, event)
            except IntegrityError:
                # A concurrent consumer may have committed the same event first
                if await self._already_processed(envelope):
                    logger.info("Event committed concurrently, skipping", extra=context)
                    return ConsumeOutcome.DUPLICATE
                logger.exception("Event handler failed", extra=context)
                raise
            except Exception:
                logger.exception("Event handler failed", extra=context)
                raise
            finally:
                event_handler_duration_seconds.labels(event_type=event_type).observe(
                    time.perf_counter() - started,
                )

    def _resolve(
        self,
        routing_key: str | None,
        envelope: EventEnvelope,
    ) -> HandlerRegistration | None:
        if routing_key:
            registration = self._handlers.get(routing_key)
            if registration is not None:
                return registration
        return self._handlers.get(envelope.event_type)

    async def _apply(
        self,
        registration: HandlerRegistration,
        envelope: EventEnvelope,
        event: object,
    ) -> ConsumeOutcome:
        event_type = registration.event_class.get_event_type()
        async with self._session_factory() as session:
            if await self._ledger.exists(session, envelope.event_id):
                logger.info(
                    "Duplicate event, skipping handler",
                    extra={"event_id": str(envelope.event_id), "event_type": event_type},
                )
                return ConsumeOutcome.DUPLICATE

            await registration.handler(session, event)
            await self._ledger.record(session, envelope.event_id, event_type)
            await session.commit()

        logger.info(
            "Event processed",
            extra={"event_id": str(envelope.event_id), "event_type": event_type},
        )
        return ConsumeOutcome.PROCESSED

    async def _already_processed(self, envelope: EventEnvelope) -> bool:
        async with self._session_factory() as session:
            return await self._ledger.exists(session, envelope.event_id)


__all__ = ["ConsumeOutcome", "EventConsumer", "QueueBinding"]
