"""Generation pump: token source → section splitter → SSE frames.

``stream_generation`` is the async generator behind ``POST /api/generate``.
Each delta is classified and its frames are yielded before the next delta
is requested, so a slow client slows the upstream read instead of growing a
buffer.

Guarantees:
    - exactly one terminal frame (``done`` or ``error``) unless the client
      went away, in which case nothing more is written;
    - the upstream connection is released on every exit path.
"""

from __future__ import annotations

import logging
import time
from typing import AsyncGenerator, Awaitable, Callable

from config.prompts.generate import build_system_prompt
from config.settings import Settings
from errors.exceptions import TransportError, UpstreamError
from models.errors import describe_error
from models.events import SectionGrammar
from services.datastream import EventStreamEncoder
from services.section_splitter import create_splitter
from services.structural_parse import parse_artifact
from services.token_source import TokenStreamSource

logger = logging.getLogger(__name__)

DisconnectProbe = Callable[[], Awaitable[bool]]
SourceFactory = Callable[..., TokenStreamSource]


async def stream_generation(
    prompt: str,
    *,
    grammar: SectionGrammar,
    settings: Settings,
    is_disconnected: DisconnectProbe | None = None,
    source_factory: SourceFactory = TokenStreamSource,
) -> AsyncGenerator[str, None]:
    """Stream one generation as SSE frames.

    Args:
        prompt:          User prompt.
        grammar:         Boundary grammar the model is asked to follow.
        settings:        Model, limits and timeout.
        is_disconnected: Probe polled before each delta (``request.is_disconnected``).
        source_factory:  Builds the token source; replaced in tests.
    """
    enc = EventStreamEncoder()
    splitter = create_splitter(grammar)
    raw_parts: list[str] = []
    started = time.monotonic()

    source = source_factory(
        prompt,
        system_prompt=build_system_prompt(grammar, prompt),
        llm_config=settings.get_code_llm_config(),
        timeout=settings.generation_timeout,
    )

    try:
        async with source:
            async for delta in source:
                if is_disconnected is not None and await is_disconnected():
                    logger.info(
                        "Client disconnected after %d deltas, aborting generation",
                        len(raw_parts),
                    )
                    return
                raw_parts.append(delta)
                for event in splitter.feed(delta):
                    yield enc.frame(event)

        for event in splitter.close():
            yield enc.frame(event)

    except (UpstreamError, TransportError) as exc:
        logger.warning("Generation failed after %d deltas: %s", len(raw_parts), exc)
        yield enc.error(describe_error(exc))
        return
    except Exception as exc:
        logger.exception("Generation failed unexpectedly")
        yield enc.error(describe_error(exc))
        return

    artifact = parse_artifact("".join(raw_parts), grammar)
    logger.info(
        "Generation complete: %d deltas in %.1fs (grammar=%s html=%d css=%d js=%d)",
        len(raw_parts),
        time.monotonic() - started,
        grammar.value,
        len(artifact.html),
        len(artifact.css),
        len(artifact.js),
    )
    yield enc.done()
