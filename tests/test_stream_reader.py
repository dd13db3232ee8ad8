"""Tests for FrameDecoder and read_events."""

from __future__ import annotations

import logging

import pytest

from client.stream_reader import FrameDecoder, read_events
from models.events import Channel, ContentEvent, DoneEvent, ErrorEvent, FileSwitchEvent
from services.datastream import EventStreamEncoder

enc = EventStreamEncoder()

STREAM = (
    enc.file_switch(Channel.HTML)
    + enc.content("<p>hi</p>", Channel.HTML)
    + enc.file_switch(Channel.CSS)
    + enc.content("p{}", Channel.CSS)
    + enc.done()
)

EXPECTED = [
    FileSwitchEvent(file=Channel.HTML),
    ContentEvent(content="<p>hi</p>", file=Channel.HTML),
    FileSwitchEvent(file=Channel.CSS),
    ContentEvent(content="p{}", file=Channel.CSS),
    DoneEvent(),
]


def _decode_chunks(chunks: list[str]) -> list:
    decoder = FrameDecoder()
    events = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    events.extend(decoder.finish())
    return events


class TestFrameDecoder:
    def test_whole_stream(self):
        assert _decode_chunks([STREAM]) == EXPECTED

    def test_single_character_reads(self):
        assert _decode_chunks(list(STREAM)) == EXPECTED

    def test_every_two_way_split(self):
        for cut in range(1, len(STREAM)):
            assert _decode_chunks([STREAM[:cut], STREAM[cut:]]) == EXPECTED

    def test_crlf_line_endings(self):
        crlf = STREAM.replace("\n", "\r\n")
        assert _decode_chunks([crlf]) == EXPECTED
        assert _decode_chunks(list(crlf)) == EXPECTED

    def test_comments_and_other_fields_ignored(self):
        text = ": ping\n\nevent: message\nid: 7\ndata: {\"type\":\"done\"}\n\n"
        assert _decode_chunks([text]) == [DoneEvent()]

    def test_multiline_data_joined(self):
        text = 'data: {"type":"error",\ndata: "message":"x"}\n\n'
        assert _decode_chunks([text]) == [ErrorEvent(message="x")]

    def test_bad_frame_dropped_and_stream_continues(self, caplog):
        decoder = FrameDecoder()
        with caplog.at_level(logging.WARNING):
            events = decoder.feed("data: {not json\n\n" + enc.done())
        assert events == [DoneEvent()]
        assert len(decoder.errors) == 1
        assert decoder.errors[0].frame == "{not json"
        assert "undecodable frame" in caplog.text

    def test_unknown_event_type_is_decode_error(self):
        decoder = FrameDecoder()
        assert decoder.feed('data: {"type":"ping"}\n\n') == []
        assert len(decoder.errors) == 1

    def test_whitespace_trailer_discarded_silently(self):
        decoder = FrameDecoder()
        decoder.feed(enc.done() + "  \n ")
        assert decoder.finish() == []
        assert decoder.errors == []

    def test_garbage_trailer_logged_not_raised(self):
        decoder = FrameDecoder()
        decoder.feed('data: {"type":"cont')
        assert decoder.finish() == []
        assert len(decoder.errors) == 1

    @pytest.mark.parametrize(
        "trailer",
        ["dat", '{"type":"done"}', "event: message\nid: 3"],
    )
    def test_trailer_without_data_field_is_decode_error(self, trailer, caplog):
        decoder = FrameDecoder()
        with caplog.at_level(logging.WARNING):
            assert decoder.feed(enc.content("<p>x</p>") + trailer) == [
                ContentEvent(content="<p>x</p>")
            ]
            assert decoder.finish() == []
        assert len(decoder.errors) == 1
        assert decoder.errors[0].frame == trailer
        assert "no data field" in caplog.text

    def test_comment_trailer_is_not_an_error(self):
        decoder = FrameDecoder()
        decoder.feed(enc.done() + ": ping")
        assert decoder.finish() == []
        assert decoder.errors == []

    def test_complete_trailer_without_blank_line_decoded(self):
        decoder = FrameDecoder()
        assert decoder.feed('data: {"type":"done"}') == []
        assert decoder.finish() == [DoneEvent()]


@pytest.mark.asyncio
async def test_read_events():
    async def chunks():
        for i in range(0, len(STREAM), 7):
            yield STREAM[i:i + 7]

    assert [event async for event in read_events(chunks())] == EXPECTED
