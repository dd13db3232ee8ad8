"""Chat API: text chat, image analysis and media generation from one form."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from api.deps import FeatureGate, get_feature_gate, get_llm_service, get_media_client, http_error
from config.prompts.chat import CHAT_SYSTEM_PROMPT, DEFAULT_IMAGE_QUESTION
from errors.exceptions import AppBuilderError
from models.errors import ErrorCode, format_error
from models.request import ChatMode, ChatResponse
from models.unlock import FeatureType
from services.llm_service import LLMService
from services.media_client import MediaClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=400, detail=format_error(ErrorCode.INVALID_REQUEST, detail))


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    message: str = Form(default=""),
    mode: ChatMode = Form(default=ChatMode.TEXT),
    image: UploadFile | None = File(default=None),
    llm: LLMService = Depends(get_llm_service),
    media: MediaClient = Depends(get_media_client),
    gate: FeatureGate = Depends(get_feature_gate),
):
    """Answer one chat turn.

    - image attached (or ``image-analysis``): vision model answers about it
    - ``image-generation`` / ``video-generation``: media model output URL
    - ``text``: single-shot assistant reply
    """
    message = message.strip()

    if image is not None or mode == ChatMode.IMAGE_ANALYSIS:
        if image is None:
            raise _bad_request("image-analysis needs an image")
        data = await image.read()
        if not data:
            raise _bad_request("uploaded image is empty")
        await gate.check(FeatureType.IMAGE_ANALYSIS)
        logger.info("Chat image analysis (%d bytes)", len(data))
        try:
            answer = await media.analyze_image(data, message or DEFAULT_IMAGE_QUESTION)
        except AppBuilderError as exc:
            logger.warning("Image analysis failed: %s", exc)
            raise http_error(exc) from exc
        await gate.consume(FeatureType.IMAGE_ANALYSIS)
        return ChatResponse(content=answer)

    if not message:
        raise _bad_request("message is required")

    if mode == ChatMode.IMAGE_GENERATION:
        await gate.check(FeatureType.IMAGE_GENERATION)
        try:
            url = await media.generate_image(message)
        except AppBuilderError as exc:
            logger.warning("Chat image generation failed: %s", exc)
            raise http_error(exc) from exc
        await gate.consume(FeatureType.IMAGE_GENERATION)
        return ChatResponse(image_url=url)

    if mode == ChatMode.VIDEO_GENERATION:
        await gate.check(FeatureType.VIDEO_GENERATION)
        try:
            url = await media.generate_video(message)
        except AppBuilderError as exc:
            logger.warning("Chat video generation failed: %s", exc)
            raise http_error(exc) from exc
        await gate.consume(FeatureType.VIDEO_GENERATION)
        return ChatResponse(video_url=url)

    try:
        content = await llm.chat(message, system=CHAT_SYSTEM_PROMPT)
    except AppBuilderError as exc:
        logger.warning("Chat completion failed: %s", exc)
        raise http_error(exc) from exc
    return ChatResponse(content=content)
