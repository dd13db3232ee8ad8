"""Tests for MarkerSplitter, TagSplitter and ActiveChannelTracker."""

from __future__ import annotations

import random

import pytest

from models.events import Channel, ContentEvent, FileSwitchEvent, SectionGrammar
from services.section_splitter import (
    ActiveChannelTracker,
    MarkerSplitter,
    TagSplitter,
    create_splitter,
)
from services.structural_parse import parse_marker_document


# ── Helpers ──────────────────────────────────────────────────────


def _feed_all(splitter, chunks: list[str]) -> list:
    events = []
    for chunk in chunks:
        events.extend(splitter.feed(chunk))
    events.extend(splitter.close())
    return events


def _channels(events) -> dict[str, str]:
    out = {ch.value: "" for ch in Channel}
    for event in events:
        if isinstance(event, ContentEvent):
            out[event.file.value] += event.content
    return out


def _chunkings(text: str):
    """Whole text, single characters, every two-way cut, and seeded random splits."""
    yield [text]
    yield list(text)
    for cut in range(1, len(text)):
        yield [text[:cut], text[cut:]]
    rng = random.Random(7)
    for _ in range(25):
        chunks, pos = [], 0
        while pos < len(text):
            step = rng.randint(1, 8)
            chunks.append(text[pos:pos + step])
            pos += step
        yield chunks


MARKER_DOCS = [
    "=== HTML ===\n<h1>Hi</h1>\n=== CSS ===\nh1{color:red}\n=== JS ===\nconsole.log(1)",
    (
        "Sure! Here is your app:\n\n=== HTML ===\n<div>\n  <p>a  b</p>\n</div>\n\n"
        "=== CSS ===\n\n.a { }\n\n=== JS ===\nlet x = 1;\n\nlet y = 2;\n   "
    ),
    "=== HTML ===<p>1</p>=== CSS ===p{}=== HTML ===<p>2</p>",
    "text with == equals === and ==== CSS === h1{}",
    "=== CSS ===\n\n=== CSS ===a{}\n=== JS ===\n\n\n",
    "<p>x</p>\n=== CS",
    "=== HTML === CSS ===\nnot css",
    "",
]


# ── MarkerSplitter ───────────────────────────────────────────────


class TestMarkerSplitter:
    def test_three_sections(self):
        events = _feed_all(MarkerSplitter(), [MARKER_DOCS[0]])
        assert _channels(events) == {
            "html": "<h1>Hi</h1>",
            "css": "h1{color:red}",
            "js": "console.log(1)",
        }
        assert [e.type for e in events] == [
            "file_switch", "content",
            "file_switch", "content",
            "file_switch", "content",
        ]
        assert [e.file for e in events if isinstance(e, FileSwitchEvent)] == [
            Channel.HTML, Channel.CSS, Channel.JS,
        ]

    def test_marker_split_across_deltas(self):
        events = _feed_all(MarkerSplitter(), ["=== CS", "S ===bo", "dy"])
        assert _channels(events) == {"html": "", "css": "body", "js": ""}
        assert isinstance(events[0], FileSwitchEvent)
        assert events[0].file == Channel.CSS

    def test_partial_marker_is_not_emitted_early(self):
        splitter = MarkerSplitter()
        assert splitter.feed("<p>x</p>\n=== C") == [ContentEvent(content="<p>x</p>", file=Channel.HTML)]

    def test_text_without_markers_is_html(self):
        events = _feed_all(MarkerSplitter(), ["hello ", "world"])
        assert _channels(events) == {"html": "hello world", "css": "", "js": ""}

    def test_inner_whitespace_preserved(self):
        events = _feed_all(MarkerSplitter(), ["a  ", "  b", "   "])
        assert _channels(events)["html"] == "a    b"

    def test_repeated_channel_joined_with_newline(self):
        doc = "=== HTML ===\n<p>1</p>\n=== CSS ===\na{}\n=== HTML ===\n<p>2</p>"
        events = _feed_all(MarkerSplitter(), [doc])
        assert _channels(events)["html"] == "<p>1</p>\n<p>2</p>"

    def test_unfinished_marker_at_end_is_content(self):
        events = _feed_all(MarkerSplitter(), ["<p>x</p>\n=== CS"])
        assert _channels(events)["html"] == "<p>x</p>\n=== CS"

    def test_switch_precedes_content_of_new_channel(self):
        for chunks in _chunkings(MARKER_DOCS[1]):
            current = Channel.HTML
            for event in _feed_all(MarkerSplitter(), chunks):
                if isinstance(event, FileSwitchEvent):
                    current = event.file
                else:
                    assert event.file == current

    def test_empty_delta_is_noop(self):
        splitter = MarkerSplitter()
        assert splitter.feed("") == []
        assert splitter.channel == Channel.HTML


class TestChunkingInvariance:
    @pytest.mark.parametrize("doc", MARKER_DOCS)
    def test_matches_structural_parse_for_any_chunking(self, doc):
        expected = parse_marker_document(doc).model_dump()
        for chunks in _chunkings(doc):
            assert _channels(_feed_all(MarkerSplitter(), chunks)) == expected, chunks

    def test_no_cross_channel_leakage(self):
        doc = "=== HTML ===\n<b>H</b>\n=== CSS ===\nCSSONLY\n=== JS ===\nJSONLY"
        for chunks in _chunkings(doc):
            out = _channels(_feed_all(MarkerSplitter(), chunks))
            assert "CSSONLY" not in out["html"] + out["js"]
            assert "JSONLY" not in out["html"] + out["css"]
            assert "===" not in "".join(out.values())


# ── Tag grammar ──────────────────────────────────────────────────

TAG_DOC = (
    "<html><head><style>body{}</style></head>"
    "<body><h1>x</h1><script>let a=1;</script></body></html>"
)


class TestTagSplitter:
    def test_passthrough_is_exact(self):
        for chunks in _chunkings(TAG_DOC):
            events = _feed_all(TagSplitter(), chunks)
            assert "".join(e.content for e in events if isinstance(e, ContentEvent)) == TAG_DOC

    def test_hints_follow_open_tags(self):
        events = _feed_all(TagSplitter(), [TAG_DOC])
        switches = [e.file for e in events if isinstance(e, FileSwitchEvent)]
        assert switches == [Channel.CSS, Channel.HTML, Channel.JS, Channel.HTML]
        contents = [(e.file, e.content) for e in events if isinstance(e, ContentEvent)]
        assert contents[0] == (Channel.HTML, "<html><head><style")
        assert (Channel.JS, ">let a=1;</script>") in contents

    def test_tag_split_across_deltas(self):
        events = _feed_all(TagSplitter(), ["<sty", "le>a{}</st", "yle>"])
        assert [e.type for e in events] == ["content", "content", "file_switch", "content", "content"]
        assert [e.file for e in events] == [
            Channel.HTML, Channel.HTML, Channel.CSS, Channel.CSS, Channel.CSS,
        ]
        assert events[1].content == "le"

    def test_case_insensitive(self):
        events = _feed_all(TagSplitter(), ["<STYLE>A{}"])
        assert events[1] == FileSwitchEvent(file=Channel.CSS)

    def test_close_emits_nothing(self):
        splitter = TagSplitter()
        splitter.feed("<p>")
        assert splitter.close() == []


class TestActiveChannelTracker:
    def test_starts_on_html(self):
        assert ActiveChannelTracker().active == Channel.HTML

    def test_closed_style_before_body_keeps_css(self):
        tracker = ActiveChannelTracker()
        tracker.feed("<style>a{}</style>")
        assert tracker.active == Channel.CSS
        tracker.feed("</head><body>")
        assert tracker.active == Channel.HTML

    def test_reports_offsets(self):
        tracker = ActiveChannelTracker()
        assert tracker.feed("ab<script>") == [(9, Channel.JS)]

    def test_tag_in_tail_counted_once(self):
        tracker = ActiveChannelTracker()
        tracker.feed("<script>")
        tracker.feed("x")
        assert tracker.feed("</script>") == []
        # no <body yet, so the hint stays on js
        assert tracker.active == Channel.JS


def test_create_splitter():
    assert isinstance(create_splitter(SectionGrammar.MARKER), MarkerSplitter)
    assert isinstance(create_splitter(SectionGrammar.TAG), TagSplitter)
