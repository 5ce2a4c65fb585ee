"""Background outbox publisher for reliable event delivery.

The publisher runs as a background task that:
1. Polls the outbox table for Pending records, oldest first
2. Publishes each record to the broker (routing key = event type)
3. Marks records Published after the broker confirm, or counts the
   failure and quarantines the record as Failed after too many attempts
4. Commits the whole batch, then waits for the next poll

The publisher uses:
- FOR UPDATE SKIP LOCKED so several instances can run side by side
- A stop event for graceful shutdown between records
- Batch-level transactions: a cancelled batch is rolled back, so no record
  is ever marked Published without a broker confirm
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from opentelemetry import trace

from groupchat_service.core.database.base import utcnow
from groupchat_service.core.exceptions import BrokerConnectionError
from groupchat_service.infra.events.outbox.models import OutboxStatus
from groupchat_service.infra.events.outbox.repository import OutboxRepository
from groupchat_service.infra.metrics.prometheus import (
    outbox_batch_duration_seconds,
    outbox_messages_failed_total,
    outbox_messages_published_total,
    outbox_pending_messages,
    outbox_publish_failures_total,
)

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from groupchat_service.infra.events.outbox.models import OutboxRecord

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class EventBroker(Protocol):
    """What the outbox publisher needs from a broker client."""

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
    ) -> None: ...


@dataclass(slots=True)
class BatchResult:
    """Outcome of one polling cycle."""

    fetched: int = 0
    published: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0


class OutboxPublisher:
    """Polls the outbox table and publishes records to RabbitMQ.

    Attributes:
        exchange_name: Durable direct exchange the records are published to
        batch_size: Records fetched per polling cycle
        poll_interval: Seconds between polling cycles
        max_retry_count: Failed attempts before a record becomes Failed
    """

    def __init__(
        self,
        broker: EventBroker,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        exchange_name: str,
        batch_size: int = 100,
        poll_interval: float = 5.0,
        max_retry_count: int = 5,
        error_message_max_length: int = 1000,
        repository: OutboxRepository | None = None,
    ) -> None:
        self.exchange_name = exchange_name
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.max_retry_count = max_retry_count
        self.error_message_max_length = error_message_max_length

        self._broker = broker
        self._session_factory = session_factory
        self._repository = repository or OutboxRepository()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ──────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the polling loop as a background task."""
        if self.is_running:
            logger.warning("Outbox publisher already running")
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(self._stop_event), name="outbox-publisher")

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop the background task gracefully.

        Waits for the current batch to finish; after ``timeout`` the task is
        cancelled and its uncommitted batch rolled back.
        """
        self._stop_event.set()
        if self._task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except TimeoutError:
            logger.warning("Outbox publisher shutdown timed out, cancelling")
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def run(self, stop_event: asyncio.Event) -> None:
        """Poll until ``stop_event`` is set.

        Errors of a single batch are logged and the loop carries on with
        the next poll.
        """
        logger.info(
            "Outbox publisher started",
            extra={
                "exchange": self.exchange_name,
                "batch_size": self.batch_size,
                "poll_interval": self.poll_interval,
                "max_retry_count": self.max_retry_count,
            },
        )
        while not stop_event.is_set():
            try:
                await self.process_batch(stop_event)
            except Exception:
                logger.exception("Error in outbox publisher loop")

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)

        logger.info("Outbox publisher stopped")

    # ──────────────────────────────────────────────────────────────
    # Batch processing
    # ──────────────────────────────────────────────────────────────

    async def process_batch(self, stop_event: asyncio.Event | None = None) -> BatchResult:
        """Publish one batch of Pending records and commit the outcome.

        Args:
            stop_event: When set mid-batch, the remaining records are left
                untouched for the next run.

        Returns:
            Counts of what happened to the fetched records
        """
        result = BatchResult()
        started = time.perf_counter()

        async with self._session_factory() as session:
            records = await self._repository.fetch_pending(session, batch_size=self.batch_size)
            result.fetched = len(records)
            counts = await self._repository.count_by_status(session)
            outbox_pending_messages.set(counts[OutboxStatus.PENDING])
            if not records:
                return result

            logger.debug("Processing outbox batch", extra={"batch_size": len(records)})

            for index, record in enumerate(records):
                if stop_event is not None and stop_event.is_set():
                    result.skipped = len(records) - index
                    logger.info(
                        "Shutdown requested, leaving remaining outbox records pending",
                        extra={"remaining": result.skipped},
                    )
                    break

                try:
                    await self._publish_record(record)
                except BrokerConnectionError as exc:
                    # Remaining records wait for the next poll
                    self._handle_failure(record, exc, result)
                    result.skipped = len(records) - index - 1
                    logger.warning(
                        "Broker unavailable, postponing outbox batch",
                        extra={"remaining": result.skipped, "error": exc.detail},
                    )
                    break
                except Exception as exc:
                    self._handle_failure(record, exc, result)
                else:
                    record.mark_published(utcnow())
                    result.published += 1
                    outbox_messages_published_total.labels(event_type=record.event_type).inc()
                    logger.debug(
                        "Outbox record published",
                        extra={"event_id": str(record.event_id), "event_type": record.event_type},
                    )

            await session.commit()

        outbox_batch_duration_seconds.observe(time.perf_counter() - started)
        if result.published or result.retried or result.failed:
            logger.info(
                "Outbox batch processed",
                extra={
                    "fetched": result.fetched,
                    "published": result.published,
                    "retried": result.retried,
                    "failed": result.failed,
                },
            )
        return result

    async def _publish_record(self, record: OutboxRecord) -> None:
        with tracer.start_as_current_span(
            f"outbox.publish {record.event_type}",
            kind=trace.SpanKind.PRODUCER,
            attributes={
                "messaging.system": "rabbitmq",
                "messaging.destination.name": self.exchange_name,
                "messaging.rabbitmq.destination.routing_key": record.event_type,
                "messaging.message.id": str(record.event_id),
            },
        ):
            await self._broker.publish(
                self.exchange_name,
                record.event_type,
                record.payload.encode("utf-8"),
                message_id=str(record.event_id),
                message_type=record.event_type,
                timestamp=record.created_at,
                headers=record.headers(),
            )

    def _handle_failure(self, record: OutboxRecord, exc: Exception, result: BatchResult) -> None:
        error = str(exc) or exc.__class__.__name__
        quarantined = record.register_failure(
            error,
            max_retry_count=self.max_retry_count,
            max_error_length=self.error_message_max_length,
        )
        outbox_publish_failures_total.labels(event_type=record.event_type).inc()
        context = {
            "event_id": str(record.event_id),
            "event_type": record.event_type,
            "retry_count": record.retry_count,
            "max_retry_count": self.max_retry_count,
            "error": error,
        }
        if quarantined:
            result.failed += 1
            outbox_messages_failed_total.labels(event_type=record.event_type).inc()
            logger.error("Outbox record moved to Failed after exhausting retries", extra=context)
        else:
            result.retried += 1
            logger.warning("Failed to publish outbox record, will retry", extra=context)


__all__ = ["BatchResult", "EventBroker", "OutboxPublisher"]
