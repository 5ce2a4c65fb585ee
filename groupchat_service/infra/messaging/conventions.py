"""Exchange and queue naming conventions shared by the backend services.

Every producing service owns one durable direct exchange and publishes
with the event type name as routing key. A consuming service names its
queue ``{service}.{exchange}``.
"""

from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# Exchange names
# ──────────────────────────────────────────────────────────────────────────────

GROUPS_EVENTS_EXCHANGE = "groups-events"
CHAT_EVENTS_EXCHANGE = "chat-events"
CHAT_MESSAGES_EXCHANGE = "chat-messages"
AUDIO_EVENTS_EXCHANGE = "audio-events"

CONTENT_TYPE_JSON = "application/json"


def get_queue_name(service_name: str, exchange: str) -> str:
    """Queue name of ``service_name`` consuming from ``exchange``.

    Example:
        >>> get_queue_name("chat-service", GROUPS_EVENTS_EXCHANGE)
        'chat-service.groups-events'
    """
    return f"{service_name}.{exchange}"


__all__ = [
    "AUDIO_EVENTS_EXCHANGE",
    "CHAT_EVENTS_EXCHANGE",
    "CHAT_MESSAGES_EXCHANGE",
    "CONTENT_TYPE_JSON",
    "GROUPS_EVENTS_EXCHANGE",
    "get_queue_name",
]
