"""Event stream encoder: one protocol event per SSE frame.

Each method returns a ready-to-yield SSE string::

    data: {"type":"content","content":"<div>","file":"html"}\\n\\n

The stream ends with a ``{"type":"done"}`` or ``{"type":"error", ...}``
frame.  There is no ``[DONE]`` sentinel.
"""

from __future__ import annotations

from sse_starlette import ServerSentEvent

from models.events import (
    Channel,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FileSwitchEvent,
    event_to_json,
)

ProtocolEventModel = ContentEvent | FileSwitchEvent | DoneEvent | ErrorEvent

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}


class EventStreamEncoder:
    """Encode protocol events into SSE frames."""

    @staticmethod
    def frame(event: ProtocolEventModel) -> str:
        return ServerSentEvent(data=event_to_json(event), sep="\n").encode().decode("utf-8")

    # ── Shorthands ───────────────────────────────────────────────

    def content(self, text: str, file: Channel | None = None) -> str:
        return self.frame(ContentEvent(content=text, file=file))

    def file_switch(self, file: Channel) -> str:
        return self.frame(FileSwitchEvent(file=file))

    def done(self) -> str:
        return self.frame(DoneEvent())

    def error(self, message: str) -> str:
        return self.frame(ErrorEvent(message=message))
