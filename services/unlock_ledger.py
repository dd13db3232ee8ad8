"""Unlock ledger: ad-reward unlocks and per-user AI feature usage.

A user earns unlocks by watching ads:

- ``daily-pass``: image analysis and image generation for
  ``daily_pass_hours``.
- ``video-unlock``: ``videos_per_unlock`` video generations, valid for
  ``video_unlock_hours``.

At most one record per ``(user, unlock type)`` is kept.  Recording an unlock
while one is still active extends its expiry and, for video unlocks, adds
the new videos to the remaining count.

Storage backends implement four primitives; the policy lives on the base
class so every backend behaves the same.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from models.unlock import (
    FEATURE_UNLOCKS,
    FeatureAccess,
    FeatureType,
    FeatureUnlock,
    UnlockStatus,
    UnlockType,
    UsageRecord,
    utcnow,
)

logger = logging.getLogger(__name__)

_DAILY_RESET = timedelta(hours=24)


# ── Abstract Interface ───────────────────────────────────────


class UnlockLedger(ABC):
    """Unlock and usage bookkeeping on top of a storage backend."""

    def __init__(
        self,
        *,
        daily_pass_hours: int = 24,
        video_unlock_hours: int = 24,
        videos_per_unlock: int = 1,
        default_revenue_cents: int = 3,
    ) -> None:
        self._durations = {
            UnlockType.DAILY_PASS: timedelta(hours=daily_pass_hours),
            UnlockType.VIDEO_UNLOCK: timedelta(hours=video_unlock_hours),
        }
        self._videos_per_unlock = videos_per_unlock
        self._default_revenue_cents = default_revenue_cents

    # -- storage primitives --------------------------------------------------

    @abstractmethod
    async def _get_unlock(self, user_id: str, unlock_type: UnlockType) -> FeatureUnlock | None:
        """Stored unlock for the pair, expired or not."""
        ...

    @abstractmethod
    async def _put_unlock(self, unlock: FeatureUnlock) -> None:
        ...

    @abstractmethod
    async def _get_usage(self, user_id: str) -> UsageRecord | None:
        ...

    @abstractmethod
    async def _put_usage(self, record: UsageRecord) -> None:
        ...

    # -- policy --------------------------------------------------------------

    async def active_unlock(
        self, user_id: str, unlock_type: UnlockType, now: datetime | None = None
    ) -> FeatureUnlock | None:
        unlock = await self._get_unlock(user_id, unlock_type)
        if unlock is None or not unlock.is_active(now):
            return None
        return unlock

    async def record_unlock(
        self,
        user_id: str,
        unlock_type: UnlockType,
        revenue_cents: int | None = None,
    ) -> FeatureUnlock:
        """Record one watched ad and grant (or extend) the unlock."""
        now = utcnow()
        revenue = self._default_revenue_cents if revenue_cents is None else revenue_cents
        expires_at = now + self._durations[unlock_type]
        videos = self._videos_per_unlock if unlock_type == UnlockType.VIDEO_UNLOCK else 0

        current = await self.active_unlock(user_id, unlock_type, now)
        if current is not None:
            current.expires_at = max(current.expires_at, expires_at)
            current.videos_remaining += videos
            current.revenue_cents += revenue
            unlock = current
        else:
            unlock = FeatureUnlock(
                user_id=user_id,
                unlock_type=unlock_type,
                expires_at=expires_at,
                videos_remaining=videos,
                revenue_cents=revenue,
                created_at=now,
            )
        await self._put_unlock(unlock)
        logger.info(
            "Unlock recorded: user=%s type=%s expires=%s videos=%d revenue=%dc",
            user_id,
            unlock_type.value,
            unlock.expires_at.isoformat(),
            unlock.videos_remaining,
            revenue,
        )
        return unlock

    async def unlock_status(self, user_id: str) -> UnlockStatus:
        now = utcnow()
        daily = await self.active_unlock(user_id, UnlockType.DAILY_PASS, now)
        video = await self.active_unlock(user_id, UnlockType.VIDEO_UNLOCK, now)
        return UnlockStatus(
            has_daily_pass=daily is not None,
            daily_pass_expires_at=daily.expires_at if daily else None,
            has_video_unlock=video is not None,
            videos_remaining=video.videos_remaining if video else 0,
            video_unlock_expires_at=video.expires_at if video else None,
        )

    async def check_feature_access(self, user_id: str, feature: FeatureType) -> FeatureAccess:
        unlock = await self.active_unlock(user_id, FEATURE_UNLOCKS[feature])
        if unlock is None:
            return FeatureAccess(has_access=False)
        has_access = True
        if feature == FeatureType.VIDEO_GENERATION:
            has_access = unlock.videos_remaining > 0
        return FeatureAccess(
            has_access=has_access,
            unlock_type=unlock.unlock_type,
            expires_at=unlock.expires_at,
            videos_remaining=unlock.videos_remaining,
        )

    async def decrement_video_count(self, user_id: str) -> bool:
        """Consume one video.  False when no active video unlock has any left."""
        unlock = await self.active_unlock(user_id, UnlockType.VIDEO_UNLOCK)
        if unlock is None or unlock.videos_remaining <= 0:
            return False
        unlock.videos_remaining -= 1
        await self._put_unlock(unlock)
        return True

    async def get_usage(self, user_id: str) -> UsageRecord:
        return await self._get_usage(user_id) or UsageRecord(user_id=user_id)

    async def track_usage(self, user_id: str, feature: FeatureType) -> UsageRecord:
        """Count one use of *feature*.

        Daily counters reset once 24 hours have passed since the last daily
        reset; the monthly counter resets when the calendar month changes.
        """
        now = utcnow()
        record = await self._get_usage(user_id)
        if record is None:
            record = UsageRecord(
                user_id=user_id, last_daily_reset=now, last_monthly_reset=now
            )

        if now - record.last_daily_reset > _DAILY_RESET:
            record.images_analyzed_today = 0
            record.images_generated_today = 0
            record.last_daily_reset = now
        last = record.last_monthly_reset
        if (now.year, now.month) != (last.year, last.month):
            record.videos_generated_this_month = 0
            record.last_monthly_reset = now

        if feature == FeatureType.IMAGE_ANALYSIS:
            record.images_analyzed_today += 1
            record.total_images_analyzed += 1
        elif feature == FeatureType.IMAGE_GENERATION:
            record.images_generated_today += 1
            record.total_images_generated += 1
        elif feature == FeatureType.VIDEO_GENERATION:
            record.videos_generated_this_month += 1
            record.total_videos_generated += 1
        record.updated_at = now

        await self._put_usage(record)
        return record


# ── In-Memory Implementation ────────────────────────────────


class InMemoryUnlockLedger(UnlockLedger):
    """Dict-backed ledger.  Contents are lost on restart."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._unlocks: dict[tuple[str, UnlockType], FeatureUnlock] = {}
        self._usage: dict[str, UsageRecord] = {}

    async def _get_unlock(self, user_id: str, unlock_type: UnlockType) -> FeatureUnlock | None:
        unlock = self._unlocks.get((user_id, unlock_type))
        return unlock.model_copy() if unlock else None

    async def _put_unlock(self, unlock: FeatureUnlock) -> None:
        self._unlocks[(unlock.user_id, unlock.unlock_type)] = unlock.model_copy()

    async def _get_usage(self, user_id: str) -> UsageRecord | None:
        record = self._usage.get(user_id)
        return record.model_copy() if record else None

    async def _put_usage(self, record: UsageRecord) -> None:
        self._usage[record.user_id] = record.model_copy()


# ── Redis Implementation ─────────────────────────────────────


class RedisUnlockLedger(UnlockLedger):
    """Redis-backed ledger for multi-worker deployments.

    Unlocks are JSON strings under ``unlock:{user}:{type}`` with a Redis TTL
    matching their expiry; usage records live under ``usage:{user}``.
    Updates are read-modify-write and not atomic across workers.
    """

    _UNLOCK_PREFIX = "unlock:"
    _USAGE_PREFIX = "usage:"

    def __init__(self, redis_url: str, **kwargs) -> None:
        super().__init__(**kwargs)
        import redis.asyncio as aioredis

        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=10,
            socket_timeout=10,
        )

    def _unlock_key(self, user_id: str, unlock_type: UnlockType) -> str:
        return f"{self._UNLOCK_PREFIX}{user_id}:{unlock_type.value}"

    async def _get_unlock(self, user_id: str, unlock_type: UnlockType) -> FeatureUnlock | None:
        data = await self._redis.get(self._unlock_key(user_id, unlock_type))
        if data is None:
            return None
        try:
            return FeatureUnlock.model_validate_json(data)
        except Exception:
            logger.warning("Failed to deserialize unlock: %s/%s", user_id, unlock_type.value)
            return None

    async def _put_unlock(self, unlock: FeatureUnlock) -> None:
        ttl = int((unlock.expires_at - utcnow()).total_seconds())
        if ttl <= 0:
            return
        await self._redis.set(
            self._unlock_key(unlock.user_id, unlock.unlock_type),
            unlock.model_dump_json(),
            ex=ttl,
        )

    async def _get_usage(self, user_id: str) -> UsageRecord | None:
        data = await self._redis.get(f"{self._USAGE_PREFIX}{user_id}")
        if data is None:
            return None
        try:
            return UsageRecord.model_validate_json(data)
        except Exception:
            logger.warning("Failed to deserialize usage record: %s", user_id)
            return None

    async def _put_usage(self, record: UsageRecord) -> None:
        await self._redis.set(f"{self._USAGE_PREFIX}{record.user_id}", record.model_dump_json())

    async def close(self) -> None:
        await self._redis.aclose()


def create_unlock_ledger(settings) -> UnlockLedger:
    """Build the configured ledger from Settings."""
    kwargs = {
        "daily_pass_hours": settings.daily_pass_hours,
        "video_unlock_hours": settings.video_unlock_hours,
        "videos_per_unlock": settings.videos_per_unlock,
        "default_revenue_cents": settings.default_revenue_cents,
    }
    if settings.unlock_store_type == "redis" and settings.redis_url:
        logger.info("Initialized RedisUnlockLedger")
        return RedisUnlockLedger(settings.redis_url, **kwargs)
    logger.info("Initialized InMemoryUnlockLedger")
    return InMemoryUnlockLedger(**kwargs)
