"""Media generation endpoints: one image or video per prompt.

Thin wrappers over :class:`MediaClient`; ad-unlock checks apply when
feature gating is enabled.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.deps import FeatureGate, get_feature_gate, get_media_client, http_error
from errors.exceptions import AppBuilderError
from models.errors import ErrorCode, format_error
from models.request import ImageGenerateResponse, MediaPromptRequest, VideoGenerateResponse
from models.unlock import FeatureType
from services.media_client import MediaClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["media"])


def _require_prompt(req: MediaPromptRequest) -> str:
    prompt = req.prompt.strip()
    if not prompt:
        raise HTTPException(
            status_code=400,
            detail=format_error(ErrorCode.INVALID_REQUEST, "prompt is required"),
        )
    return prompt


@router.post("/generate-image", response_model=ImageGenerateResponse)
async def generate_image_endpoint(
    req: MediaPromptRequest,
    media: MediaClient = Depends(get_media_client),
    gate: FeatureGate = Depends(get_feature_gate),
):
    prompt = _require_prompt(req)
    await gate.check(FeatureType.IMAGE_GENERATION)
    logger.info("Generating image (prompt=%d chars)", len(prompt))
    try:
        url = await media.generate_image(prompt)
    except AppBuilderError as exc:
        logger.warning("Image generation failed: %s", exc)
        raise http_error(exc) from exc
    await gate.consume(FeatureType.IMAGE_GENERATION)
    return ImageGenerateResponse(image_url=url)


@router.post("/generate-video", response_model=VideoGenerateResponse)
async def generate_video_endpoint(
    req: MediaPromptRequest,
    media: MediaClient = Depends(get_media_client),
    gate: FeatureGate = Depends(get_feature_gate),
):
    """Generate a short video.  Consumes one unlocked video when gated."""
    prompt = _require_prompt(req)
    await gate.check(FeatureType.VIDEO_GENERATION)
    logger.info("Generating video (prompt=%d chars)", len(prompt))
    try:
        url = await media.generate_video(prompt)
    except AppBuilderError as exc:
        logger.warning("Video generation failed: %s", exc)
        raise http_error(exc) from exc
    await gate.consume(FeatureType.VIDEO_GENERATION)
    return VideoGenerateResponse(video_url=url)
