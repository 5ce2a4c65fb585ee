"""Registry of consumer-side event handlers.

Handlers apply the side effect of one event inside the session the
consumer gives them. They must not commit: the consumer commits the
effect together with the idempotency ledger row.

Usage:
    chat_handlers = EventHandlerRegistry()

    @chat_handlers.on(GroupCreatedEvent)
    async def handle_group_created(session: AsyncSession, event: GroupCreatedEvent) -> None:
        session.add(ChatGroupMember(...))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from groupchat_service.core.events.base import DomainEvent

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="DomainEvent")


@dataclass(frozen=True, slots=True)
class HandlerRegistration:
    event_class: type[DomainEvent]
    handler: Callable[[AsyncSession, Any], Awaitable[None]]

    @property
    def name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))


class EventHandlerRegistry:
    """Map from event type name to its event class and handler.

    One handler per event type; registering a second one is an error.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, HandlerRegistration] = {}

    def register(
        self,
        event_class: type[E],
        handler: Callable[[AsyncSession, E], Awaitable[None]],
    ) -> None:
        """Register ``handler`` for ``event_class``.

        Raises:
            ValueError: If another handler is registered for the type.
        """
        event_type = event_class.get_event_type()
        existing = self._handlers.get(event_type)
        if existing is not None and existing.handler is not handler:
            msg = f"Handler for '{event_type}' already registered: {existing.name}"
            raise ValueError(msg)
        self._handlers[event_type] = HandlerRegistration(event_class, handler)
        logger.debug("Registered event handler", extra={"event_type": event_type})

    def on(
        self,
        event_class: type[E],
    ) -> Callable[
        [Callable[[AsyncSession, E], Awaitable[None]]],
        Callable[[AsyncSession, E], Awaitable[None]],
    ]:
        """Decorator form of ``register``."""

        def decorator(
            handler: Callable[[AsyncSession, E], Awaitable[None]],
        ) -> Callable[[AsyncSession, E], Awaitable[None]]:
            self.register(event_class, handler)
            return handler

        return decorator

    def get(self, event_type: str) -> HandlerRegistration | None:
        return self._handlers.get(event_type)

    def routing_keys(self) -> list[str]:
        """Event types with a handler, sorted; used as queue binding keys."""
        return sorted(self._handlers)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["EventHandlerRegistry", "HandlerRegistration"]
