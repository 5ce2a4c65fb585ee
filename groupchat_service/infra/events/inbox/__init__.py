"""Idempotency ledger for consumed events."""

from groupchat_service.infra.events.inbox.models import ProcessedEvent
from groupchat_service.infra.events.inbox.repository import ProcessedEventRepository

__all__ = ["ProcessedEvent", "ProcessedEventRepository"]
