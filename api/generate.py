"""Code generation API: streamed ``{html, css, js}`` generation over SSE."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import StreamingResponse

from api.deps import get_token_source_factory
from config.settings import Settings, get_settings
from models.request import GenerateRequest
from services.datastream import STREAM_HEADERS
from services.generation import SourceFactory, stream_generation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])


@router.post("/generate")
async def generate(
    req: GenerateRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    source_factory: SourceFactory = Depends(get_token_source_factory),
):
    """Stream one generation as ``content`` / ``file_switch`` events.

    The stream always ends with exactly one ``done`` or ``error`` event.
    Provider failures after the stream started arrive as ``error`` events,
    not as HTTP status codes.
    """
    grammar = req.grammar or settings.section_grammar
    logger.info(
        "Generating app (grammar=%s, prompt=%d chars, request_id=%s)",
        grammar.value,
        len(req.prompt),
        getattr(request.state, "request_id", "-"),
    )
    return StreamingResponse(
        stream_generation(
            req.prompt,
            grammar=grammar,
            settings=settings,
            is_disconnected=request.is_disconnected,
            source_factory=source_factory,
        ),
        media_type="text/event-stream",
        headers={**STREAM_HEADERS, "X-Section-Grammar": grammar.value},
    )
