"""Render driver: turns protocol events into live per-channel buffers.

While streaming, buffers only grow.  On ``done`` the raw transcript is
re-parsed structurally and the parse replaces the buffers; that parse is
the artifact.  Under the marker grammar the transcript is rebuilt from the
received content with the markers re-inserted at each ``file_switch``, so the
parse reproduces the server-side split rather than checking it.  On
``error`` everything streamed so far is discarded.

``on_change`` (optional) receives a :class:`ViewState` snapshot after every
event, which is enough to drive a live preview.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from errors.exceptions import ProtocolViolation
from models.artifact import GeneratedArtifact
from models.events import (
    Channel,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FileSwitchEvent,
    SectionGrammar,
)
from services.section_splitter import DEFAULT_MARKERS, ActiveChannelTracker
from services.structural_parse import parse_artifact

logger = logging.getLogger(__name__)

SUCCESS_BANNER = "✅ App generated successfully!"
FAILURE_BANNER = "❌ Generation failed. Please try again."


class DriverStatus(str, Enum):
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class ViewState(BaseModel):
    """What a preview shows at one instant."""

    html: str = ""
    css: str = ""
    js: str = ""
    active: Channel = Channel.HTML
    status: DriverStatus = DriverStatus.STREAMING
    banner: str | None = None


class RenderDriver:
    """Consume the events of one generation.

    Args:
        grammar:   Grammar the server streamed with (``X-Section-Grammar``).
        on_change: Called with a fresh :class:`ViewState` after each event.
    """

    def __init__(
        self,
        grammar: SectionGrammar = SectionGrammar.MARKER,
        on_change: Callable[[ViewState], None] | None = None,
    ) -> None:
        self.grammar = grammar
        self._on_change = on_change
        self._buffers: dict[Channel, list[str]] = {ch: [] for ch in Channel}
        self._raw: list[str] = []
        self._active = Channel.HTML
        self._tracker = ActiveChannelTracker() if grammar == SectionGrammar.TAG else None

        self.status = DriverStatus.STREAMING
        self.banner: str | None = None
        self.artifact: GeneratedArtifact | None = None
        self.error_message: str | None = None

    # -- accessors -----------------------------------------------------------

    @property
    def active_channel(self) -> Channel:
        return self._active

    @property
    def finished(self) -> bool:
        return self.status != DriverStatus.STREAMING

    @property
    def raw_transcript(self) -> str:
        return "".join(self._raw)

    def buffer(self, channel: Channel) -> str:
        return "".join(self._buffers[channel])

    def state(self) -> ViewState:
        return ViewState(
            html=self.buffer(Channel.HTML),
            css=self.buffer(Channel.CSS),
            js=self.buffer(Channel.JS),
            active=self._active,
            status=self.status,
            banner=self.banner,
        )

    # -- event handling ------------------------------------------------------

    def handle(self, event: ContentEvent | FileSwitchEvent | DoneEvent | ErrorEvent) -> None:
        if self.finished:
            logger.debug("Ignoring %s event after terminal event", event.type)
            return

        if isinstance(event, ContentEvent):
            self._on_content(event)
        elif isinstance(event, FileSwitchEvent):
            self._on_switch(event.file)
        elif isinstance(event, DoneEvent):
            self._finalize()
        elif isinstance(event, ErrorEvent):
            self._fail(event.message)

        if self._on_change is not None:
            self._on_change(self.state())

    def end_of_stream(self) -> None:
        """Signal that the transport closed.

        Raises:
            ProtocolViolation: no ``done``/``error`` event was received.
        """
        if self.finished:
            return
        self._fail("stream ended without a terminal event")
        if self._on_change is not None:
            self._on_change(self.state())
        raise ProtocolViolation("event stream closed before a done or error event")

    def _on_content(self, event: ContentEvent) -> None:
        self._raw.append(event.content)
        if self._tracker is not None:
            for _, channel in self._tracker.feed(event.content):
                self._active = channel
        self._buffers[event.file or self._active].append(event.content)

    def _on_switch(self, channel: Channel) -> None:
        if self._tracker is not None:
            # tag grammar: hints are derived from the document itself
            return
        # keep the transcript re-parseable with the same markers
        self._raw.append(f"\n{DEFAULT_MARKERS[channel]}\n")
        self._active = channel

    def _finalize(self) -> None:
        artifact = parse_artifact(self.raw_transcript, self.grammar)
        self._buffers = {ch: [artifact.channel(ch)] for ch in Channel}
        self.artifact = artifact
        self.status = DriverStatus.DONE
        self.banner = SUCCESS_BANNER
        logger.info(
            "Generation finalized (html=%d css=%d js=%d)",
            len(artifact.html),
            len(artifact.css),
            len(artifact.js),
        )

    def _fail(self, message: str) -> None:
        self._buffers = {ch: [] for ch in Channel}
        self.artifact = None
        self.status = DriverStatus.FAILED
        self.banner = FAILURE_BANNER
        self.error_message = message
        logger.warning("Generation failed: %s", message)
