"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from config.settings import Settings, get_settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(request: Request, settings: Settings = Depends(get_settings)):
    media = getattr(request.app.state, "media_client", None)
    return {
        "status": "healthy",
        "codeModel": settings.code_model,
        "sectionGrammar": settings.section_grammar.value,
        "mediaConfigured": bool(media and media.configured),
        "featureGating": settings.feature_gating_enabled,
    }
