"""Domain event base class and wire envelope encoding.

A domain event is an immutable fact produced by a successful aggregate
state transition. It is serialized once, into the outbox record payload,
and travels to consumers as a JSON envelope with camelCase field names:

    {
        "eventType": "GroupCreatedEvent",
        "eventVersion": 1,
        "eventId": "0b6f8f0e-...",
        "occurredAt": "2026-01-13T20:37:31.000000Z",
        "groupId": "...",
        "name": "...",
        ...
    }

Consumers ignore fields they do not know, so producers may add fields
without breaking older consumers.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DomainEvent(BaseModel):
    """Base class for all domain events.

    Subclasses must define:
    - event_type: ClassVar[str] - routing key and type name (the class name by convention)
    - event_version: ClassVar[int] - schema version for evolution (default: 1)

    Example:
        class GroupCreatedEvent(DomainEvent):
            event_type: ClassVar[str] = "GroupCreatedEvent"

            group_id: str
            name: str

    Attributes:
        event_id: Globally unique identifier assigned at creation
        occurred_at: When the event happened (UTC)
    """

    event_type: ClassVar[str] = ""
    event_version: ClassVar[int] = 1

    event_id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        description="Unique event identifier, never reused",
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Event timestamp in UTC",
    )

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Validate that concrete subclasses name their event type."""
        super().__init_subclass__(**kwargs)
        if not cls.event_type:
            msg = f"{cls.__name__} must define 'event_type' class variable"
            raise TypeError(msg)

    @classmethod
    def get_event_type(cls) -> str:
        return cls.event_type

    @classmethod
    def get_event_version(cls) -> int:
        return cls.event_version

    # ──────────────────────────────────────────────────────────────
    # Wire envelope
    # ──────────────────────────────────────────────────────────────

    def to_envelope(self) -> dict[str, Any]:
        """Return the JSON-compatible wire envelope for this event."""
        return {
            "eventType": self.event_type,
            "eventVersion": self.event_version,
            **self.model_dump(mode="json", by_alias=True),
        }

    def serialize(self) -> str:
        """Serialize the envelope to the JSON text stored in the outbox."""
        return json.dumps(self.to_envelope(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_envelope(cls, data: dict[str, Any]) -> Self:
        """Rebuild an event from a decoded envelope.

        Raises:
            pydantic.ValidationError: If required payload fields are missing
                or have the wrong type.
        """
        return cls.model_validate(data)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(event_id={self.event_id})"


__all__ = ["DomainEvent"]
