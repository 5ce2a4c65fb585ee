"""Decoding of inbound event envelopes.

A body that can never be processed (not UTF-8 JSON, not an object, no
valid ``eventId``) raises ``PoisonMessageError``. The consumer acks such
messages so they do not loop on the queue forever.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from groupchat_service.core.exceptions import PoisonMessageError


@dataclass(frozen=True, slots=True)
class EventEnvelope:
    """Decoded envelope of one inbound message.

    Attributes:
        event_id: Identifier used for idempotency
        event_type: ``eventType`` of the body, or the routing key when absent
        event_version: Schema version, 1 when absent
        data: The full decoded body, payload fields included
    """

    event_id: uuid.UUID
    event_type: str
    event_version: int = 1
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, body: bytes | str, routing_key: str | None = None) -> EventEnvelope:
        """Decode ``body`` into an envelope.

        Raises:
            PoisonMessageError: If the body can never be processed.
        """
        try:
            data = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            msg = "Message body is not valid JSON"
            raise PoisonMessageError(msg, extra={"routing_key": routing_key}) from exc

        if not isinstance(data, dict):
            msg = "Message body is not a JSON object"
            raise PoisonMessageError(msg, extra={"routing_key": routing_key})

        raw_id = data.get("eventId")
        if not raw_id:
            msg = "Message has no eventId"
            raise PoisonMessageError(msg, extra={"routing_key": routing_key})
        try:
            event_id = uuid.UUID(str(raw_id))
        except ValueError as exc:
            msg = f"Message eventId {raw_id!r} is not a UUID"
            raise PoisonMessageError(msg, extra={"routing_key": routing_key}) from exc

        event_type = data.get("eventType") or routing_key
        if not event_type:
            msg = "Message has neither eventType nor routing key"
            raise PoisonMessageError(msg, extra={"event_id": str(event_id)})

        version = data.get("eventVersion", 1)
        if not isinstance(version, int) or isinstance(version, bool):
            version = 1

        return cls(event_id=event_id, event_type=str(event_type), event_version=version, data=data)


__all__ = ["EventEnvelope"]
