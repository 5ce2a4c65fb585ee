"""Unit tests for the event type registry."""
from __future__ import annotations

from typing import ClassVar

import pytest

from groupchat_service.core.events import DomainEvent, EventRegistry, event_registry


class OrderPlaced(DomainEvent):
    event_type: ClassVar[str] = "OrderPlaced"

    order_id: str


class OrderPlacedV2(DomainEvent):
    event_type: ClassVar[str] = "OrderPlaced"
    event_version: ClassVar[int] = 2

    order_id: str
    channel: str = "web"


class OtherOrderPlaced(DomainEvent):
    event_type: ClassVar[str] = "OrderPlaced"

    order_id: str


@pytest.fixture
def registry() -> EventRegistry:
    return EventRegistry()


class TestEventRegistry:
    def test_register_and_get(self, registry: EventRegistry):
        registry.register(OrderPlaced)

        assert registry.get("OrderPlaced") is OrderPlaced
        assert "OrderPlaced" in registry
        assert len(registry) == 1

    def test_register_is_idempotent(self, registry: EventRegistry):
        registry.register(OrderPlaced)
        registry.register(OrderPlaced)

        assert registry.get("OrderPlaced", 1) is OrderPlaced

    def test_conflicting_registration_raises(self, registry: EventRegistry):
        """Two classes cannot claim the same type and version."""
        registry.register(OrderPlaced)

        with pytest.raises(ValueError, match="already registered"):
            registry.register(OtherOrderPlaced)

    def test_get_returns_latest_version_by_default(self, registry: EventRegistry):
        registry.register(OrderPlaced)
        registry.register(OrderPlacedV2)

        assert registry.get("OrderPlaced") is OrderPlacedV2
        assert registry.get("OrderPlaced", 1) is OrderPlaced

    def test_get_or_raise_unknown_type(self, registry: EventRegistry):
        with pytest.raises(KeyError, match="Unknown event type"):
            registry.get_or_raise("Missing")

    def test_deserialize_envelope(self, registry: EventRegistry):
        registry.register(OrderPlaced)
        envelope = OrderPlaced(order_id="o-1").to_envelope()

        event = registry.deserialize(envelope)

        assert isinstance(event, OrderPlaced)
        assert event.order_id == "o-1"

    def test_deserialize_unknown_version_falls_back_to_latest(self, registry: EventRegistry):
        registry.register(OrderPlaced)
        envelope = OrderPlaced(order_id="o-1").to_envelope()
        envelope["eventVersion"] = 7

        event = registry.deserialize(envelope)

        assert isinstance(event, OrderPlaced)

    def test_deserialize_requires_event_type(self, registry: EventRegistry):
        with pytest.raises(ValueError, match="eventType"):
            registry.deserialize({"eventId": "x"})

    def test_global_registry_knows_group_events(self):
        """Importing the feature registers its events."""
        import groupchat_service.features.groups.events  # noqa: F401

        assert {
            "GroupCreatedEvent",
            "GroupDeletedEvent",
            "UserJoinedGroupEvent",
            "UserLeftGroupEvent",
        } <= set(event_registry.list_types())

    def test_global_registry_decodes_other_service_contracts(self):
        envelope = {
            "eventType": "MessageSentEvent",
            "eventVersion": 1,
            "eventId": "0b6f8f0e-2a44-4f51-9a57-4f5e8f3b1c2d",
            "occurredAt": "2026-01-13T20:37:31Z",
            "messageId": "m-1",
            "groupId": "g-1",
            "userId": "u-1",
            "content": "hello",
        }

        event = event_registry.deserialize(envelope)

        assert event.event_type == "MessageSentEvent"
        assert event.content == "hello"
        assert "AudioParticipantJoined" in event_registry
