"""Prometheus metrics for the event delivery pipeline."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Dedicated registry so tests and embedding applications control exposure
REGISTRY = CollectorRegistry()

# Outbox publisher metrics
outbox_messages_published_total = Counter(
    "outbox_messages_published_total",
    "Outbox records published and confirmed by the broker",
    ["event_type"],
    registry=REGISTRY,
)

outbox_publish_failures_total = Counter(
    "outbox_publish_failures_total",
    "Failed publish attempts of outbox records",
    ["event_type"],
    registry=REGISTRY,
)

outbox_messages_failed_total = Counter(
    "outbox_messages_failed_total",
    "Outbox records quarantined as Failed after exhausting retries",
    ["event_type"],
    registry=REGISTRY,
)

outbox_batch_duration_seconds = Histogram(
    "outbox_batch_duration_seconds",
    "Time spent publishing one outbox batch",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

outbox_pending_messages = Gauge(
    "outbox_pending_messages",
    "Pending outbox records at the start of the last poll",
    registry=REGISTRY,
)

# RabbitMQ metrics
rabbitmq_messages_published_total = Counter(
    "rabbitmq_messages_published_total",
    "Total number of messages published to RabbitMQ",
    ["exchange"],
    registry=REGISTRY,
)

rabbitmq_messages_consumed_total = Counter(
    "rabbitmq_messages_consumed_total",
    "Total number of messages consumed from RabbitMQ",
    ["queue", "outcome"],
    registry=REGISTRY,
)

rabbitmq_connection_attempts_total = Counter(
    "rabbitmq_connection_attempts_total",
    "Broker connection attempts by result",
    ["result"],
    registry=REGISTRY,
)

# Consumer metrics
event_handler_duration_seconds = Histogram(
    "event_handler_duration_seconds",
    "Time spent applying an inbound event, ledger write included",
    ["event_type"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)
