"""Prometheus metrics collection."""

from groupchat_service.infra.metrics.prometheus import (
    REGISTRY,
    event_handler_duration_seconds,
    outbox_batch_duration_seconds,
    outbox_messages_failed_total,
    outbox_messages_published_total,
    outbox_pending_messages,
    outbox_publish_failures_total,
    rabbitmq_connection_attempts_total,
    rabbitmq_messages_consumed_total,
    rabbitmq_messages_published_total,
)

__all__ = [
    "REGISTRY",
    "event_handler_duration_seconds",
    "outbox_batch_duration_seconds",
    "outbox_messages_failed_total",
    "outbox_messages_published_total",
    "outbox_pending_messages",
    "outbox_publish_failures_total",
    "rabbitmq_connection_attempts_total",
    "rabbitmq_messages_consumed_total",
    "rabbitmq_messages_published_total",
]
