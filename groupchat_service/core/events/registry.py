"""Event type registry for envelope deserialization and discovery.

Maps event type names (the routing keys on the wire) to event classes,
with one entry per schema version.

Usage:
    from groupchat_service.core.events import DomainEvent, event_registry

    @event_registry.register
    class GroupCreatedEvent(DomainEvent):
        event_type: ClassVar[str] = "GroupCreatedEvent"
        group_id: str

    event = event_registry.deserialize(envelope)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from groupchat_service.core.events.base import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")


class EventRegistry:
    """Registry for domain event types.

    Registration is expected at import time; lookups are read-only
    afterwards.
    """

    def __init__(self) -> None:
        # event_type -> version -> event_class
        self._events: dict[str, dict[int, type[DomainEvent]]] = {}
        self._latest_versions: dict[str, int] = {}

    def register(self, event_class: type[T]) -> type[T]:
        """Register an event class. Usable as a class decorator.

        Registering the same class twice is a no-op.

        Raises:
            ValueError: If the type/version is already taken by another class.
        """
        event_type = event_class.get_event_type()
        event_version = event_class.get_event_version()
        versions = self._events.setdefault(event_type, {})

        existing = versions.get(event_version)
        if existing is not None:
            if existing is not event_class:
                msg = (
                    f"Event type '{event_type}' version {event_version} "
                    f"already registered with {existing.__name__}"
                )
                raise ValueError(msg)
            return event_class

        versions[event_version] = event_class
        if event_version > self._latest_versions.get(event_type, 0):
            self._latest_versions[event_type] = event_version

        logger.debug(
            "Registered event type",
            extra={"event_type": event_type, "version": event_version},
        )
        return event_class

    def get(self, event_type: str, version: int | None = None) -> type[DomainEvent] | None:
        """Get an event class by type and optional version (latest if None)."""
        versions = self._events.get(event_type)
        if not versions:
            return None
        if version is not None:
            return versions.get(version)
        return versions.get(self._latest_versions[event_type])

    def get_or_raise(self, event_type: str, version: int | None = None) -> type[DomainEvent]:
        """Get an event class or raise if not found.

        Raises:
            KeyError: If event type/version not found
        """
        event_class = self.get(event_type, version)
        if event_class is None:
            version_str = f" version {version}" if version else ""
            msg = f"Unknown event type: '{event_type}'{version_str}"
            raise KeyError(msg)
        return event_class

    def deserialize(self, envelope: dict[str, Any]) -> DomainEvent:
        """Deserialize an event from its wire envelope.

        An unknown version falls back to the latest registered version of
        the type, which works because envelope fields are only ever added.

        Raises:
            ValueError: If the envelope has no ``eventType``
            KeyError: If the event type is not registered
            pydantic.ValidationError: If the payload doesn't match the schema
        """
        event_type = envelope.get("eventType")
        if not event_type:
            msg = "Envelope missing 'eventType'"
            raise ValueError(msg)

        version = envelope.get("eventVersion", 1)
        event_class = self.get(event_type, version)
        if event_class is None:
            event_class = self.get_or_raise(event_type)
            logger.warning(
                "Using latest version for deserialization",
                extra={
                    "event_type": event_type,
                    "requested_version": version,
                    "using_version": event_class.get_event_version(),
                },
            )
        return event_class.from_envelope(envelope)

    def list_types(self) -> list[str]:
        return sorted(self._events)

    def __contains__(self, event_type: str) -> bool:
        return event_type in self._events

    def __len__(self) -> int:
        return len(self._events)


# Global registry instance
event_registry = EventRegistry()

__all__ = ["EventRegistry", "event_registry"]
