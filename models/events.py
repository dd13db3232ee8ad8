"""Protocol events streamed from the generation endpoint to the client.

Every frame on the wire carries exactly one of these, discriminated by
``type``:

- ``content``:     text to append to a channel buffer.
- ``file_switch``: subsequent content belongs to another channel (UI hint).
- ``done``:        terminal, generation finished.
- ``error``:       terminal, generation aborted.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class Channel(str, Enum):
    """Named output partition of generated code."""

    HTML = "html"
    CSS = "css"
    JS = "js"


class SectionGrammar(str, Enum):
    """Boundary convention the model output is expected to follow."""

    MARKER = "marker"  # "=== CSS ===" delimiter lines
    TAG = "tag"  # single HTML document, <style>/<script> blocks


class ContentEvent(BaseModel):
    type: Literal["content"] = "content"
    content: str
    file: Channel | None = None


class FileSwitchEvent(BaseModel):
    type: Literal["file_switch"] = "file_switch"
    file: Channel


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


ProtocolEvent = Annotated[
    Union[ContentEvent, FileSwitchEvent, DoneEvent, ErrorEvent],
    Field(discriminator="type"),
]

TERMINAL_EVENTS = (DoneEvent, ErrorEvent)

_event_adapter: TypeAdapter[ProtocolEvent] = TypeAdapter(ProtocolEvent)


def parse_event(payload: str | bytes) -> ContentEvent | FileSwitchEvent | DoneEvent | ErrorEvent:
    """Validate a JSON payload into a typed event.

    Raises ``pydantic.ValidationError`` for malformed JSON, unknown ``type``
    values or missing fields.
    """
    return _event_adapter.validate_json(payload)


def event_to_json(event: ContentEvent | FileSwitchEvent | DoneEvent | ErrorEvent) -> str:
    """Serialize an event to compact JSON, omitting an unset ``file``."""
    return event.model_dump_json(exclude_none=True)


def is_terminal(event: BaseModel) -> bool:
    return isinstance(event, TERMINAL_EVENTS)
