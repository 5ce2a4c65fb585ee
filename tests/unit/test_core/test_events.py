"""Unit tests for domain events and their wire envelope."""
from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import ClassVar

import pytest
from pydantic import ValidationError

from groupchat_service.core.events.base import DomainEvent
from groupchat_service.core.events.contracts import MessageSentEvent
from groupchat_service.features.groups.events import GroupCreatedEvent, UserJoinedGroupEvent


class SampleEvent(DomainEvent):
    event_type: ClassVar[str] = "SampleEvent"

    group_id: str
    member_count: int = 0


# ──────────────────────────────────────────────────────────────
# DomainEvent base class
# ──────────────────────────────────────────────────────────────


class TestDomainEvent:
    """Tests for DomainEvent base class."""

    def test_event_has_auto_generated_id(self):
        """Every event gets its own UUID."""
        first = SampleEvent(group_id="g-1")
        second = SampleEvent(group_id="g-1")

        assert isinstance(first.event_id, uuid.UUID)
        assert first.event_id != second.event_id

    def test_event_has_utc_timestamp(self):
        """occurred_at is set to the current UTC time."""
        before = datetime.now(UTC)
        event = SampleEvent(group_id="g-1")
        after = datetime.now(UTC)

        assert before <= event.occurred_at <= after
        assert event.occurred_at.tzinfo is not None

    def test_event_is_immutable(self):
        """Events are facts and cannot be changed after creation."""
        event = SampleEvent(group_id="g-1")

        with pytest.raises(ValidationError):
            event.group_id = "g-2"  # type: ignore[misc]

    def test_subclass_without_event_type_is_rejected(self):
        """A concrete event must name its type."""
        with pytest.raises(TypeError, match="event_type"):

            class Nameless(DomainEvent):
                value: int

    def test_class_accessors(self):
        assert SampleEvent.get_event_type() == "SampleEvent"
        assert SampleEvent.get_event_version() == 1


# ──────────────────────────────────────────────────────────────
# Envelope encoding
# ──────────────────────────────────────────────────────────────


class TestEnvelope:
    """Tests for the camelCase JSON envelope."""

    def test_envelope_uses_camel_case(self):
        """Field names on the wire are camelCase."""
        event = SampleEvent(group_id="g-1", member_count=3)

        envelope = event.to_envelope()

        assert envelope["eventType"] == "SampleEvent"
        assert envelope["eventVersion"] == 1
        assert envelope["eventId"] == str(event.event_id)
        assert envelope["groupId"] == "g-1"
        assert envelope["memberCount"] == 3
        assert "occurredAt" in envelope
        assert "group_id" not in envelope

    def test_serialize_is_compact_json(self):
        event = SampleEvent(group_id="g-1")

        payload = event.serialize()

        assert ", " not in payload
        assert "\": " not in payload
        assert json.loads(payload)["eventId"] == str(event.event_id)

    def test_round_trip_preserves_identity(self):
        """Decoding the envelope gives back the same event."""
        event = GroupCreatedEvent(
            group_id="g-1",
            name="Design",
            owner_id="u-1",
            created_at=datetime(2026, 1, 13, 20, 37, tzinfo=UTC),
        )

        restored = GroupCreatedEvent.from_envelope(json.loads(event.serialize()))

        assert restored == event

    def test_unknown_fields_are_ignored(self):
        """Producers may add fields without breaking older consumers."""
        envelope = UserJoinedGroupEvent(
            group_id="g-1",
            user_id="u-2",
            joined_at=datetime.now(UTC),
        ).to_envelope()
        envelope["nickName"] = "newcomer"

        event = UserJoinedGroupEvent.from_envelope(envelope)

        assert event.user_id == "u-2"

    def test_missing_required_field_fails_validation(self):
        envelope = SampleEvent(group_id="g-1").to_envelope()
        del envelope["groupId"]

        with pytest.raises(ValidationError):
            SampleEvent.from_envelope(envelope)

    def test_string_payload_keeps_whitespace(self):
        event = MessageSentEvent(
            message_id="m-1",
            group_id="g-1",
            user_id="u-1",
            content="  indented\n\ncode block  \n",
        )

        restored = MessageSentEvent.from_envelope(json.loads(event.serialize()))

        assert restored.content == "  indented\n\ncode block  \n"
