"""Tests for EventStreamEncoder and the protocol event models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from models.events import (
    Channel,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FileSwitchEvent,
    event_to_json,
    is_terminal,
    parse_event,
)
from services.datastream import STREAM_HEADERS, EventStreamEncoder


# ── Helpers ──────────────────────────────────────────────────────


def _parse_sse(sse_str: str) -> list[dict]:
    """Parse an SSE string into its JSON payloads."""
    results = []
    for line in sse_str.strip().split("\n"):
        line = line.strip()
        if line.startswith("data: "):
            results.append(json.loads(line[len("data: "):]))
    return results


# ── Encoder ──────────────────────────────────────────────────────


class TestEventStreamEncoder:
    def test_one_frame_per_event(self):
        frame = EventStreamEncoder().content("<div>", Channel.HTML)
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert frame.count("\n\n") == 1
        assert _parse_sse(frame) == [{"type": "content", "content": "<div>", "file": "html"}]

    def test_content_without_file_omits_key(self):
        assert _parse_sse(EventStreamEncoder().content("x")) == [{"type": "content", "content": "x"}]

    def test_newlines_stay_inside_json(self):
        frame = EventStreamEncoder().content("a\n\nb", Channel.JS)
        assert frame.count("\n") == 2
        assert _parse_sse(frame)[0]["content"] == "a\n\nb"

    def test_file_switch(self):
        assert _parse_sse(EventStreamEncoder().file_switch(Channel.CSS)) == [
            {"type": "file_switch", "file": "css"}
        ]

    def test_done_has_no_sentinel(self):
        frame = EventStreamEncoder().done()
        assert frame == 'data: {"type":"done"}\n\n'
        assert "[DONE]" not in frame

    def test_error(self):
        assert _parse_sse(EventStreamEncoder().error("UPSTREAM_ERROR: boom")) == [
            {"type": "error", "message": "UPSTREAM_ERROR: boom"}
        ]

    def test_unicode_round_trip(self):
        frame = EventStreamEncoder().content("héllo ✅", Channel.HTML)
        assert parse_event(frame[len("data: "):].strip()).content == "héllo ✅"

    def test_stream_headers(self):
        assert STREAM_HEADERS["Cache-Control"] == "no-cache, no-transform"
        assert STREAM_HEADERS["X-Accel-Buffering"] == "no"


# ── Event models ─────────────────────────────────────────────────


class TestProtocolEvents:
    def test_parse_each_type(self):
        assert parse_event('{"type":"content","content":"a","file":"js"}') == ContentEvent(
            content="a", file=Channel.JS
        )
        assert parse_event('{"type":"file_switch","file":"css"}') == FileSwitchEvent(file=Channel.CSS)
        assert parse_event('{"type":"done"}') == DoneEvent()
        assert parse_event('{"type":"error","message":"m"}') == ErrorEvent(message="m")

    @pytest.mark.parametrize(
        "payload",
        [
            '{"type":"weird"}',
            '{"type":"file_switch","file":"python"}',
            '{"type":"content"}',
            "not json",
        ],
    )
    def test_invalid_payloads_rejected(self, payload):
        with pytest.raises(ValidationError):
            parse_event(payload)

    def test_terminal(self):
        assert is_terminal(DoneEvent())
        assert is_terminal(ErrorEvent(message="x"))
        assert not is_terminal(ContentEvent(content="x"))

    def test_event_to_json_is_compact(self):
        assert event_to_json(FileSwitchEvent(file=Channel.HTML)) == '{"type":"file_switch","file":"html"}'
