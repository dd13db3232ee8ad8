"""FastAPI dependencies: services built in the lifespan, read from ``app.state``.

Tests swap any of these through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, Request

from config.settings import Settings, get_settings
from errors.exceptions import AppBuilderError, FeatureLockedError, ServiceNotConfiguredError
from models.errors import ErrorCode, describe_error, format_error
from models.unlock import FeatureType
from services.generation import SourceFactory
from services.llm_service import LLMService
from services.media_client import MediaClient
from services.project_store import ProjectStore
from services.token_source import TokenStreamSource
from services.unlock_ledger import UnlockLedger

logger = logging.getLogger(__name__)


def get_project_store(request: Request) -> ProjectStore:
    return request.app.state.project_store


def get_unlock_ledger(request: Request) -> UnlockLedger:
    return request.app.state.unlock_ledger


def get_media_client(request: Request) -> MediaClient:
    return request.app.state.media_client


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_token_source_factory() -> SourceFactory:
    return TokenStreamSource


def get_optional_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    value = (x_user_id or "").strip()
    return value or None


def require_user_id(user_id: str | None = Depends(get_optional_user_id)) -> str:
    """The signed-in user, from ``X-User-Id``.  401 when absent."""
    if user_id is None:
        raise HTTPException(
            status_code=401,
            detail=format_error(ErrorCode.UNAUTHORIZED, "authentication required"),
        )
    return user_id


class FeatureGate:
    """Ad-unlock checks around a gated media feature.

    A no-op unless ``feature_gating_enabled`` is set.
    """

    def __init__(self, ledger: UnlockLedger, settings: Settings, user_id: str | None) -> None:
        self._ledger = ledger
        self._enabled = settings.feature_gating_enabled
        self._user_id = user_id

    async def check(self, feature: FeatureType) -> None:
        """Raise :class:`HTTPException` 401/403 when *feature* is not available."""
        if not self._enabled:
            return
        if self._user_id is None:
            raise HTTPException(
                status_code=401,
                detail=format_error(ErrorCode.UNAUTHORIZED, "authentication required"),
            )
        access = await self._ledger.check_feature_access(self._user_id, feature)
        if not access.has_access:
            exc = FeatureLockedError(feature.value)
            logger.info("Blocked %s for user=%s", feature.value, self._user_id)
            raise HTTPException(
                status_code=403,
                detail=format_error(ErrorCode.FEATURE_LOCKED, str(exc)),
            )

    async def consume(self, feature: FeatureType) -> None:
        """Record one successful use of *feature*."""
        if not self._enabled or self._user_id is None:
            return
        if feature == FeatureType.VIDEO_GENERATION:
            await self._ledger.decrement_video_count(self._user_id)
        await self._ledger.track_usage(self._user_id, feature)


def get_feature_gate(
    ledger: UnlockLedger = Depends(get_unlock_ledger),
    settings: Settings = Depends(get_settings),
    user_id: str | None = Depends(get_optional_user_id),
) -> FeatureGate:
    return FeatureGate(ledger, settings, user_id)


def http_error(exc: AppBuilderError) -> HTTPException:
    """Translate a provider-side domain error into an HTTP error."""
    if isinstance(exc, ServiceNotConfiguredError):
        return HTTPException(status_code=500, detail=format_error(ErrorCode.INTERNAL_ERROR, str(exc)))
    return HTTPException(status_code=502, detail=describe_error(exc))
