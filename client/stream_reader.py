"""Client stream reader: SSE text chunks in, protocol events out.

Network reads do not line up with frames: a frame can arrive in pieces and
one read can carry several frames.  ``FrameDecoder`` buffers until a blank
line completes a frame, then validates its ``data`` payload.

Decoding is best-effort.  A frame that does not validate is logged as a
:class:`DecodeError` and skipped; it never aborts the stream.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from errors.exceptions import DecodeError
from models.events import ContentEvent, DoneEvent, ErrorEvent, FileSwitchEvent, parse_event

logger = logging.getLogger(__name__)

Event = ContentEvent | FileSwitchEvent | DoneEvent | ErrorEvent


class FrameDecoder:
    """Incremental SSE frame decoder.

    - ``\\r\\n`` and lone ``\\r`` line endings are normalized to ``\\n``;
    - multi-line ``data:`` fields are joined with ``\\n``;
    - comment lines (``: ping``) and other fields are ignored.
    """

    def __init__(self) -> None:
        self._buf = ""
        self._pending_cr = False
        self.errors: list[DecodeError] = []

    def feed(self, text: str) -> list[Event]:
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        if text.endswith("\r"):
            # may be the first half of a \r\n split across reads
            text = text[:-1]
            self._pending_cr = True
        self._buf += text.replace("\r\n", "\n").replace("\r", "\n")

        *frames, self._buf = self._buf.split("\n\n")
        events: list[Event] = []
        for frame in frames:
            event = self._decode(frame)
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> list[Event]:
        """Flush at end of stream.

        Whitespace-only leftovers are dropped silently.  Anything else is
        decoded if possible, otherwise logged and dropped.
        """
        rest, self._buf = self._buf, ""
        self._pending_cr = False
        if not rest.strip():
            return []
        logger.debug("Stream ended with an unterminated frame (%d chars)", len(rest))
        event = self._decode(rest, trailing=True)
        return [event] if event is not None else []

    def _decode(self, frame: str, *, trailing: bool = False) -> Event | None:
        data_lines: list[str] = []
        field_lines = 0
        for line in frame.split("\n"):
            if not line.strip() or line.startswith(":"):
                continue
            field_lines += 1
            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if field == "data":
                data_lines.append(value)
        if not data_lines:
            # a cut-off field name or a bare payload at end of stream
            if trailing and field_lines:
                self._reject(DecodeError("undecodable trailing data (no data field)", frame=frame))
            return None

        payload = "\n".join(data_lines)
        try:
            return parse_event(payload)
        except ValidationError as exc:
            self._reject(
                DecodeError(
                    f"undecodable frame ({exc.error_count()} validation errors)",
                    frame=payload,
                )
            )
            return None

    def _reject(self, err: DecodeError) -> None:
        self.errors.append(err)
        logger.warning("%s: %.200s", err, err.frame)


async def read_events(
    chunks: AsyncIterable[str], decoder: FrameDecoder | None = None
) -> AsyncIterator[Event]:
    """Adapt an async stream of text chunks into protocol events."""
    decoder = decoder or FrameDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.finish():
        yield event
