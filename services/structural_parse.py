"""Final, non-incremental parse of a complete generation transcript.

Run once after ``done``.  Both grammars have a parser here:

- ``parse_marker_document``: split on ``=== NAME ===`` markers.  Gives the
  same per-channel result as concatenating ``MarkerSplitter`` content.
- ``parse_tag_document``: extract the first ``<style>``, the first
  ``<script>`` and the ``<body>`` (scripts removed) of one HTML document.

Both are pure functions of the raw text.
"""

from __future__ import annotations

import re

from models.artifact import GeneratedArtifact
from models.events import Channel, SectionGrammar
from services.section_splitter import DEFAULT_MARKERS

_STYLE_RE = re.compile(r"<style\b[^>]*>(.*?)</style>", re.IGNORECASE | re.DOTALL)
_SCRIPT_RE = re.compile(r"<script\b[^>]*>(.*?)</script>", re.IGNORECASE | re.DOTALL)
_BODY_RE = re.compile(r"<body\b[^>]*>(.*?)</body>", re.IGNORECASE | re.DOTALL)


def parse_marker_document(
    raw: str, markers: dict[Channel, str] | None = None
) -> GeneratedArtifact:
    """Split marker-delimited text into channels.

    Text before the first marker goes to ``html``.  Each section is stripped;
    non-empty sections of the same channel are joined with a newline.
    """
    markers = markers or DEFAULT_MARKERS
    by_marker = {marker: channel for channel, marker in markers.items()}
    pattern = re.compile("|".join(re.escape(m) for m in markers.values()))

    sections: dict[Channel, list[str]] = {channel: [] for channel in Channel}
    channel = Channel.HTML
    pos = 0
    for match in pattern.finditer(raw):
        _add_section(sections[channel], raw[pos:match.start()])
        channel = by_marker[match.group(0)]
        pos = match.end()
    _add_section(sections[channel], raw[pos:])

    return GeneratedArtifact(
        **{channel.value: "\n".join(parts) for channel, parts in sections.items()}
    )


def _add_section(parts: list[str], text: str) -> None:
    text = text.strip()
    if text:
        parts.append(text)


def parse_tag_document(raw: str) -> GeneratedArtifact:
    """Extract channels from a single HTML document.

    Missing elements yield empty channels.  Only the first ``<style>`` and
    first ``<script>`` are used; every script is removed from the body.
    """
    style = _STYLE_RE.search(raw)
    script = _SCRIPT_RE.search(raw)
    body = _BODY_RE.search(raw)

    html = ""
    if body:
        html = _SCRIPT_RE.sub("", body.group(1)).strip()

    return GeneratedArtifact(
        html=html,
        css=style.group(1).strip() if style else "",
        js=script.group(1).strip() if script else "",
    )


def parse_artifact(raw: str, grammar: SectionGrammar) -> GeneratedArtifact:
    """Dispatch to the parser for *grammar*."""
    if grammar == SectionGrammar.TAG:
        return parse_tag_document(raw)
    return parse_marker_document(raw)
