"""In-memory buffer of domain events raised by one business operation.

Aggregates record events while they change state; the outbox writer reads
the buffer inside the same unit of work and drains it once the outbox rows
have been flushed. The buffer performs no I/O.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from groupchat_service.core.events.base import DomainEvent


class EventBuffer:
    """Ordered list of pending domain events."""

    __slots__ = ("_events",)

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []

    def record(self, event: DomainEvent) -> None:
        """Append an event."""
        self._events.append(event)

    def drain(self) -> list[DomainEvent]:
        """Return all buffered events in recording order and clear the buffer."""
        events, self._events = self._events, []
        return events

    def __iter__(self) -> Iterator[DomainEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    def __repr__(self) -> str:
        types = ", ".join(event.event_type for event in self._events)
        return f"EventBuffer([{types}])"


class HasDomainEvents:
    """Mixin giving an aggregate its own event buffer.

    The buffer is created on first access, so instances loaded by the ORM
    (which bypasses ``__init__``) get one as well.
    """

    @property
    def domain_events(self) -> EventBuffer:
        buffer: EventBuffer | None = self.__dict__.get("_domain_events")
        if buffer is None:
            buffer = EventBuffer()
            self.__dict__["_domain_events"] = buffer
        return buffer

    def record_event(self, event: DomainEvent) -> None:
        self.domain_events.record(event)


__all__ = ["EventBuffer", "HasDomainEvents"]
