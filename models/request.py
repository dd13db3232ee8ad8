"""API request / response models."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from models.base import CamelModel
from models.events import SectionGrammar


class ChatMode(str, Enum):
    TEXT = "text"
    IMAGE_ANALYSIS = "image-analysis"
    IMAGE_GENERATION = "image-generation"
    VIDEO_GENERATION = "video-generation"


class GenerateRequest(CamelModel):
    """POST /api/generate request body."""

    prompt: str = Field(..., min_length=1)
    grammar: SectionGrammar | None = None


class ChatResponse(CamelModel):
    """POST /api/chat response body. Exactly one field is set."""

    content: str | None = None
    image_url: str | None = None
    video_url: str | None = None


class MediaPromptRequest(CamelModel):
    """POST /api/generate-image and /api/generate-video request body."""

    prompt: str = ""


class ImageGenerateResponse(CamelModel):
    image_url: str


class VideoGenerateResponse(CamelModel):
    video_url: str


class SaveProjectRequest(CamelModel):
    """POST /api/projects request body."""

    name: str = Field(..., min_length=1, max_length=200)
    html: str = ""
    css: str = ""
    js: str = ""


class UnlockRequest(CamelModel):
    """POST /api/unlock request body."""

    unlock_type: str | None = None
    revenue_cents: int | None = Field(default=None, ge=0)
