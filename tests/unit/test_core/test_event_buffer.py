"""Unit tests for the in-memory event buffer."""
from __future__ import annotations

from typing import ClassVar

from groupchat_service.core.events import DomainEvent, EventBuffer, HasDomainEvents


class PingEvent(DomainEvent):
    event_type: ClassVar[str] = "PingEvent"

    seq: int


class Aggregate(HasDomainEvents):
    pass


class TestEventBuffer:
    def test_drain_returns_events_in_recording_order(self):
        """Events come out in the order they were recorded."""
        buffer = EventBuffer()
        events = [PingEvent(seq=i) for i in range(3)]
        for event in events:
            buffer.record(event)

        assert buffer.drain() == events

    def test_drain_empties_the_buffer(self):
        buffer = EventBuffer()
        buffer.record(PingEvent(seq=1))

        buffer.drain()

        assert len(buffer) == 0
        assert not buffer
        assert buffer.drain() == []

    def test_iteration_does_not_consume(self):
        buffer = EventBuffer()
        buffer.record(PingEvent(seq=1))

        assert [e.seq for e in buffer] == [1]
        assert len(buffer) == 1

    def test_repr_lists_event_types(self):
        buffer = EventBuffer()
        buffer.record(PingEvent(seq=1))

        assert repr(buffer) == "EventBuffer([PingEvent])"


class TestHasDomainEvents:
    def test_each_aggregate_has_its_own_buffer(self):
        """Buffers are per instance, never shared."""
        first, second = Aggregate(), Aggregate()

        first.record_event(PingEvent(seq=1))

        assert len(first.domain_events) == 1
        assert len(second.domain_events) == 0

    def test_buffer_is_created_lazily(self):
        aggregate = Aggregate()

        assert aggregate.domain_events is aggregate.domain_events
