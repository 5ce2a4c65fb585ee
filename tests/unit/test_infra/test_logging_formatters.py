"""Tests for the JSON log formatter."""
from __future__ import annotations

import json
import sys
import logging

from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags

from groupchat_service.infra.logging.formatters import JSONFormatter


def make_record(message: str = "Outbox record published", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="groupchat_service.infra.events.outbox.processor",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "groupchat_service.infra.events.outbox.processor"
        assert data["message"] == "Outbox record published"
        assert data["timestamp"].endswith("Z")
        assert "trace_id" not in data

    def test_extra_fields_become_top_level_keys(self):
        record = make_record(event_id="0b6f", retry_count=2, event_types=["A", "B"])

        data = json.loads(JSONFormatter().format(record))

        assert data["event_id"] == "0b6f"
        assert data["retry_count"] == 2
        assert data["event_types"] == ["A", "B"]
        assert "pathname" not in data

    def test_static_fields(self):
        formatter = JSONFormatter(static={"service": "chat-service"})

        data = json.loads(formatter.format(make_record()))

        assert data["service"] == "chat-service"

    def test_exception_stays_on_one_line(self):
        try:
            raise RuntimeError("broker went away")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()

        output = JSONFormatter().format(record)

        assert "\n" not in output
        assert "broker went away" in json.loads(output)["exception"]

    def test_active_span_is_correlated(self):
        context = SpanContext(
            trace_id=0x1234,
            span_id=0x5678,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )

        with trace.use_span(NonRecordingSpan(context)):
            data = json.loads(JSONFormatter().format(make_record()))

        assert data["trace_id"] == format(0x1234, "032x")
        assert data["span_id"] == format(0x5678, "016x")

    def test_unserializable_values_use_str(self):
        data = json.loads(JSONFormatter().format(make_record(queue=object)))

        assert data["queue"] == str(object)
