"""RabbitMQ messaging for event-driven communication between services.

- connection: shared, auto-recovering broker connection
- publisher: persistent publishes with publisher confirms
- consumer: idempotent consumer with manual acknowledgment
- handlers: event type to handler registry
- envelope: decoding of inbound messages
- conventions: exchange and queue naming
"""

from __future__ import annotations

from groupchat_service.infra.messaging.connection import (
    BrokerConnectionManager,
    ConnectionState,
)
from groupchat_service.infra.messaging.consumer import (
    ConsumeOutcome,
    EventConsumer,
    QueueBinding,
)
from groupchat_service.infra.messaging.conventions import (
    GROUPS_EVENTS_EXCHANGE,
    get_queue_name,
)
from groupchat_service.infra.messaging.envelope import EventEnvelope
from groupchat_service.infra.messaging.handlers import EventHandlerRegistry, HandlerRegistration
from groupchat_service.infra.messaging.publisher import RabbitPublisher

__all__ = [
    "GROUPS_EVENTS_EXCHANGE",
    "BrokerConnectionManager",
    "ConnectionState",
    "ConsumeOutcome",
    "EventConsumer",
    "EventEnvelope",
    "EventHandlerRegistry",
    "HandlerRegistration",
    "QueueBinding",
    "RabbitPublisher",
    "get_queue_name",
]
