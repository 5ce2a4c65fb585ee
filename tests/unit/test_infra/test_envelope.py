"""Tests for inbound envelope decoding."""
from __future__ import annotations

import json
import uuid

import pytest

from groupchat_service.core.exceptions import PoisonMessageError
from groupchat_service.features.groups.events import GroupDeletedEvent
from groupchat_service.infra.messaging.envelope import EventEnvelope


def body(**fields) -> bytes:
    return json.dumps(fields).encode("utf-8")


class TestEventEnvelope:
    def test_parses_published_event(self):
        event = GroupDeletedEvent(group_id="g-1", deleted_at="2026-01-13T20:37:31Z")

        envelope = EventEnvelope.parse(event.serialize().encode("utf-8"), "GroupDeletedEvent")

        assert envelope.event_id == event.event_id
        assert envelope.event_type == "GroupDeletedEvent"
        assert envelope.event_version == 1
        assert envelope.data["groupId"] == "g-1"

    def test_event_type_falls_back_to_routing_key(self):
        event_id = uuid.uuid4()

        envelope = EventEnvelope.parse(body(eventId=str(event_id)), "UserLeftGroupEvent")

        assert envelope.event_type == "UserLeftGroupEvent"

    def test_body_event_type_wins_over_routing_key(self):
        envelope = EventEnvelope.parse(
            body(eventId=str(uuid.uuid4()), eventType="GroupCreatedEvent"),
            "something-else",
        )

        assert envelope.event_type == "GroupCreatedEvent"

    @pytest.mark.parametrize("version", ["2", None, True, 1.5])
    def test_unusable_version_defaults_to_one(self, version):
        envelope = EventEnvelope.parse(
            body(eventId=str(uuid.uuid4()), eventType="X", eventVersion=version),
        )

        assert envelope.event_version == 1

    def test_accepts_text_body(self):
        envelope = EventEnvelope.parse(json.dumps({"eventId": str(uuid.uuid4()), "eventType": "X"}))

        assert envelope.event_type == "X"

    @pytest.mark.parametrize(
        ("raw", "routing_key"),
        [
            (b"not json", "X"),
            (b"\x80\x81abc", "X"),
            (b"[1, 2, 3]", "X"),
            (b'"just a string"', "X"),
            (body(eventType="X"), "X"),
            (body(eventId="", eventType="X"), "X"),
            (body(eventId="not-a-uuid", eventType="X"), "X"),
            (body(eventId=str(uuid.uuid4())), None),
        ],
        ids=[
            "invalid-json",
            "invalid-utf8",
            "array",
            "string",
            "missing-event-id",
            "empty-event-id",
            "malformed-event-id",
            "no-event-type",
        ],
    )
    def test_poison_bodies(self, raw, routing_key):
        with pytest.raises(PoisonMessageError):
            EventEnvelope.parse(raw, routing_key)
