"""Section splitter: classify a streamed completion into html/css/js channels.

Two boundary grammars are supported because the model is not bound to
either:

- **Marker grammar** (``MarkerSplitter``): sections are introduced by literal
  markers such as ``=== CSS ===``.  A marker may be split across deltas, so the
  splitter keeps a lookback buffer holding the longest suffix that could still
  grow into a marker.  Whitespace adjacent to a marker belongs to the boundary;
  the per-channel concatenation of ``content`` events always equals
  :func:`services.structural_parse.parse_marker_document` on the same text,
  however it was chunked.
- **Tag grammar** (``TagSplitter``): the output is one HTML document that is
  passed through untouched.  ``ActiveChannelTracker`` derives a preview hint
  (which tab to show) from open ``<style>`` / ``<script>`` tags.

A ``file_switch`` is always emitted on its own, before any content of the
new channel.
"""

from __future__ import annotations

import logging
import string

from models.events import Channel, ContentEvent, FileSwitchEvent, SectionGrammar

logger = logging.getLogger(__name__)

DEFAULT_MARKERS: dict[Channel, str] = {
    Channel.HTML: "=== HTML ===",
    Channel.CSS: "=== CSS ===",
    Channel.JS: "=== JS ===",
}

SplitterEvent = ContentEvent | FileSwitchEvent


# ── Marker grammar ───────────────────────────────────────────────


class MarkerSplitter:
    """Incremental splitter for ``=== NAME ===`` delimited output.

    Text before the first marker belongs to ``html``.  A channel entered a
    second time is separated from its earlier content by a single newline.
    """

    def __init__(self, markers: dict[Channel, str] | None = None) -> None:
        self._markers = dict(markers or DEFAULT_MARKERS)
        self._lookback = max(len(m) for m in self._markers.values()) - 1
        self._buf = ""  # unclassified text, at most a partial marker after feed()
        self._held = ""  # trailing whitespace that may still precede a marker
        self._channel = Channel.HTML
        self._section_start = True
        self._written: set[Channel] = set()

    @property
    def channel(self) -> Channel:
        return self._channel

    def feed(self, delta: str) -> list[SplitterEvent]:
        if not delta:
            return []
        self._buf += delta
        events: list[SplitterEvent] = []

        while (found := self._find_marker()) is not None:
            idx, channel, marker = found
            events.extend(self._classify(self._buf[:idx], boundary=True))
            self._buf = self._buf[idx + len(marker):]
            events.append(FileSwitchEvent(file=channel))
            logger.debug("Marker boundary: %s → %s", self._channel.value, channel.value)
            self._channel = channel
            self._section_start = True

        keep = self._partial_marker_len()
        ready, self._buf = self._buf[: len(self._buf) - keep], self._buf[len(self._buf) - keep:]
        events.extend(self._classify(ready, boundary=False))
        return events

    def close(self) -> list[SplitterEvent]:
        """Flush at end of stream; an unfinished marker prefix is plain content."""
        events = self._classify(self._buf, boundary=True)
        self._buf = ""
        self._held = ""
        return events

    # -- internals -----------------------------------------------------------

    def _find_marker(self) -> tuple[int, Channel, str] | None:
        best: tuple[int, Channel, str] | None = None
        for channel, marker in self._markers.items():
            idx = self._buf.find(marker)
            if idx != -1 and (best is None or idx < best[0]):
                best = (idx, channel, marker)
        return best

    def _partial_marker_len(self) -> int:
        """Length of the longest buffer suffix that is a proper marker prefix."""
        for k in range(min(len(self._buf), self._lookback), 0, -1):
            tail = self._buf[-k:]
            if any(m.startswith(tail) for m in self._markers.values()):
                return k
        return 0

    def _classify(self, text: str, *, boundary: bool) -> list[SplitterEvent]:
        """Turn *text* into content for the current channel.

        ``boundary`` is True when a marker or the end of stream follows, in
        which case trailing whitespace is dropped instead of held.
        """
        if self._section_start:
            text = text.lstrip()
            if not text:
                return []
            self._section_start = False
            if self._channel in self._written:
                text = "\n" + text
        else:
            text = self._held + text
            self._held = ""

        if boundary:
            text = text.rstrip()
        else:
            body = text.rstrip()
            self._held = text[len(body):]
            text = body

        if not text:
            return []
        self._written.add(self._channel)
        return [ContentEvent(content=text, file=self._channel)]


# ── Tag grammar ──────────────────────────────────────────────────

_STYLE_OPEN = "<style"
_STYLE_CLOSE = "</style>"
_SCRIPT_OPEN = "<script"
_SCRIPT_CLOSE = "</script>"
_BODY_OPEN = "<body"
_HEAD_CLOSE = "</head>"
_TAG_NEEDLES = (_STYLE_OPEN, _STYLE_CLOSE, _SCRIPT_OPEN, _SCRIPT_CLOSE, _BODY_OPEN, _HEAD_CLOSE)
_TAIL_LEN = max(len(n) for n in _TAG_NEEDLES) - 1

# Lowercases ASCII only, so offsets in the folded text match the original.
_ASCII_FOLD = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class ActiveChannelTracker:
    """Preview heuristic: which channel is the model writing right now?

    - ``css`` while a ``<style`` is open,
    - else ``js`` while a ``<script`` is open,
    - else ``html`` once both ``<body`` and ``</head>`` were seen,
    - otherwise the previous choice sticks (initially ``html``).

    Tags split across calls to :meth:`feed` are still detected.
    """

    def __init__(self, initial: Channel = Channel.HTML) -> None:
        self._active = initial
        self._counts: dict[str, int] = dict.fromkeys(_TAG_NEEDLES, 0)
        self._tail = ""

    @property
    def active(self) -> Channel:
        return self._active

    def feed(self, text: str) -> list[tuple[int, Channel]]:
        """Consume *text* and report hint changes.

        Returns ``(offset, channel)`` pairs where ``offset`` is the position in
        *text* just after the tag that changed the hint.
        """
        if not text:
            return []
        window = self._tail + text.translate(_ASCII_FOLD)
        base = len(self._tail)

        hits: list[tuple[int, str]] = []
        for needle in _TAG_NEEDLES:
            start = window.find(needle)
            while start != -1:
                end = start + len(needle)
                if end > base:  # matches wholly inside the tail were counted before
                    hits.append((end, needle))
                start = window.find(needle, start + 1)
        hits.sort()

        changes: list[tuple[int, Channel]] = []
        for end, needle in hits:
            self._counts[needle] += 1
            channel = self._resolve()
            if channel != self._active:
                self._active = channel
                changes.append((end - base, channel))

        self._tail = window[-_TAIL_LEN:]
        return changes

    def _resolve(self) -> Channel:
        c = self._counts
        if c[_STYLE_OPEN] > c[_STYLE_CLOSE]:
            return Channel.CSS
        if c[_SCRIPT_OPEN] > c[_SCRIPT_CLOSE]:
            return Channel.JS
        if c[_BODY_OPEN] and c[_HEAD_CLOSE]:
            return Channel.HTML
        return self._active


class TagSplitter:
    """Pass-through splitter for single-document output.

    Content is forwarded byte-for-byte; the ``file`` field and ``file_switch``
    events are preview hints only.
    """

    def __init__(self) -> None:
        self._tracker = ActiveChannelTracker()

    @property
    def channel(self) -> Channel:
        return self._tracker.active

    def feed(self, delta: str) -> list[SplitterEvent]:
        if not delta:
            return []
        events: list[SplitterEvent] = []
        pos = 0
        current = self._tracker.active
        for offset, channel in self._tracker.feed(delta):
            if offset > pos:
                events.append(ContentEvent(content=delta[pos:offset], file=current))
            events.append(FileSwitchEvent(file=channel))
            current = channel
            pos = offset
        if pos < len(delta):
            events.append(ContentEvent(content=delta[pos:], file=current))
        return events

    def close(self) -> list[SplitterEvent]:
        return []


SectionSplitter = MarkerSplitter | TagSplitter


def create_splitter(grammar: SectionGrammar) -> SectionSplitter:
    """Build a fresh, request-scoped splitter for *grammar*."""
    if grammar == SectionGrammar.TAG:
        return TagSplitter()
    return MarkerSplitter()
