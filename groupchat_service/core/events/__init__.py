"""Domain events: base model, per-operation buffer and type registry.

Usage:
    from groupchat_service.core.events import DomainEvent, HasDomainEvents, event_registry

    @event_registry.register
    class GroupCreatedEvent(DomainEvent):
        event_type: ClassVar[str] = "GroupCreatedEvent"
        group_id: str

    class Group(Base, HasDomainEvents):
        ...
        group.record_event(GroupCreatedEvent(group_id=str(group.id)))
"""

from groupchat_service.core.events.base import DomainEvent
from groupchat_service.core.events.buffer import EventBuffer, HasDomainEvents
from groupchat_service.core.events.registry import EventRegistry, event_registry
from groupchat_service.core.events import contracts  # noqa: F401

__all__ = [
    "DomainEvent",
    "EventBuffer",
    "EventRegistry",
    "HasDomainEvents",
    "event_registry",
]
