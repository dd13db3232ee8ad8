"""Ad-gated feature unlock models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from models.base import CamelModel


class UnlockType(str, Enum):
    DAILY_PASS = "daily-pass"
    VIDEO_UNLOCK = "video-unlock"


class FeatureType(str, Enum):
    IMAGE_ANALYSIS = "image-analysis"
    IMAGE_GENERATION = "image-generation"
    VIDEO_GENERATION = "video-generation"


# Which unlock grants which feature.
FEATURE_UNLOCKS: dict[FeatureType, UnlockType] = {
    FeatureType.IMAGE_ANALYSIS: UnlockType.DAILY_PASS,
    FeatureType.IMAGE_GENERATION: UnlockType.DAILY_PASS,
    FeatureType.VIDEO_GENERATION: UnlockType.VIDEO_UNLOCK,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeatureUnlock(CamelModel):
    """One active unlock earned by watching ads."""

    user_id: str
    unlock_type: UnlockType
    expires_at: datetime
    videos_remaining: int = 0
    revenue_cents: int = 0
    created_at: datetime = Field(default_factory=utcnow)

    def is_active(self, now: datetime | None = None) -> bool:
        return self.expires_at > (now or utcnow())


class FeatureAccess(CamelModel):
    has_access: bool
    unlock_type: UnlockType | None = None
    expires_at: datetime | None = None
    videos_remaining: int | None = None


class UnlockStatus(CamelModel):
    has_daily_pass: bool = False
    daily_pass_expires_at: datetime | None = None
    has_video_unlock: bool = False
    videos_remaining: int = 0
    video_unlock_expires_at: datetime | None = None


class UsageRecord(CamelModel):
    """Per-user AI feature usage counters."""

    user_id: str
    images_analyzed_today: int = 0
    images_generated_today: int = 0
    videos_generated_this_month: int = 0
    total_images_analyzed: int = 0
    total_images_generated: int = 0
    total_videos_generated: int = 0
    last_daily_reset: datetime = Field(default_factory=utcnow)
    last_monthly_reset: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
