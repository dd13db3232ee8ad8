"""Project store: saved ``{html, css, js}`` artifacts per owner.

Provides an abstract interface with an in-memory implementation (single
worker, tests) and a Redis implementation (multi-worker deployments).  The
guest-mode store that writes to a local JSON file lives in
``client/local_store.py``.

Visibility: a project is returned to its owner, or to anyone when it is
public.  ``owner_id=None`` addresses unowned (guest) projects.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from errors.exceptions import ProjectNotFoundError
from models.artifact import GeneratedArtifact, Project

logger = logging.getLogger(__name__)


# ── Abstract Interface ───────────────────────────────────────


class ProjectStore(ABC):
    """Abstract project store: implement for different backends."""

    @abstractmethod
    async def save(
        self, name: str, files: GeneratedArtifact, owner_id: str | None = None
    ) -> Project:
        """Persist a new project and return it."""
        ...

    @abstractmethod
    async def list(self, owner_id: str | None = None) -> list[Project]:
        """Projects owned by *owner_id*, newest first."""
        ...

    @abstractmethod
    async def get(self, project_id: str, owner_id: str | None = None) -> Project:
        """Fetch one project.  Raises :class:`ProjectNotFoundError`."""
        ...

    @abstractmethod
    async def delete(self, project_id: str, owner_id: str | None = None) -> None:
        """Remove one project.  Raises :class:`ProjectNotFoundError`."""
        ...


def visible_to(project: Project, owner_id: str | None) -> bool:
    return project.owner_id == owner_id or project.is_public


def newest_first(projects: list[Project]) -> list[Project]:
    return sorted(projects, key=lambda p: p.created_at, reverse=True)


# ── In-Memory Implementation ────────────────────────────────


class InMemoryProjectStore(ProjectStore):
    """Dict-backed store.  Contents are lost on restart."""

    def __init__(self) -> None:
        self._store: dict[str, Project] = {}

    async def save(
        self, name: str, files: GeneratedArtifact, owner_id: str | None = None
    ) -> Project:
        project = Project(name=name, owner_id=owner_id, **files.model_dump())
        self._store[project.id] = project
        logger.info("Saved project %s (%r) for owner=%s", project.id, name, owner_id)
        return project

    async def list(self, owner_id: str | None = None) -> list[Project]:
        return newest_first([p for p in self._store.values() if p.owner_id == owner_id])

    async def get(self, project_id: str, owner_id: str | None = None) -> Project:
        project = self._store.get(project_id)
        if project is None or not visible_to(project, owner_id):
            raise ProjectNotFoundError(project_id)
        return project

    async def delete(self, project_id: str, owner_id: str | None = None) -> None:
        project = self._store.get(project_id)
        if project is None or project.owner_id != owner_id:
            raise ProjectNotFoundError(project_id)
        del self._store[project_id]
        logger.info("Deleted project %s", project_id)


# ── Redis Implementation ─────────────────────────────────────


class RedisProjectStore(ProjectStore):
    """Redis-backed store for multi-worker deployments.

    Each project is a JSON string under ``project:{id}``; each owner has a
    sorted set ``projects:{owner}`` scored by creation time.
    """

    _KEY_PREFIX = "project:"
    _OWNER_PREFIX = "projects:"
    _GUEST = "_guest"

    def __init__(self, redis_url: str):
        import redis.asyncio as aioredis

        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=10,
            socket_timeout=10,
        )

    def _key(self, project_id: str) -> str:
        return f"{self._KEY_PREFIX}{project_id}"

    def _owner_key(self, owner_id: str | None) -> str:
        return f"{self._OWNER_PREFIX}{owner_id or self._GUEST}"

    async def _load(self, project_id: str) -> Project | None:
        data = await self._redis.get(self._key(project_id))
        if data is None:
            return None
        try:
            return Project.model_validate_json(data)
        except Exception:
            logger.warning("Failed to deserialize project: %s", project_id)
            return None

    async def save(
        self, name: str, files: GeneratedArtifact, owner_id: str | None = None
    ) -> Project:
        project = Project(name=name, owner_id=owner_id, **files.model_dump())
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.set(self._key(project.id), project.model_dump_json())
            pipe.zadd(self._owner_key(owner_id), {project.id: project.created_at.timestamp()})
            await pipe.execute()
        logger.info("Saved project %s (%r) for owner=%s", project.id, name, owner_id)
        return project

    async def list(self, owner_id: str | None = None) -> list[Project]:
        ids = await self._redis.zrevrange(self._owner_key(owner_id), 0, -1)
        if not ids:
            return []
        raw = await self._redis.mget([self._key(pid) for pid in ids])
        projects: list[Project] = []
        for pid, data in zip(ids, raw):
            if data is None:
                continue
            try:
                projects.append(Project.model_validate_json(data))
            except Exception:
                logger.warning("Failed to deserialize project: %s", pid)
        return projects

    async def get(self, project_id: str, owner_id: str | None = None) -> Project:
        project = await self._load(project_id)
        if project is None or not visible_to(project, owner_id):
            raise ProjectNotFoundError(project_id)
        return project

    async def delete(self, project_id: str, owner_id: str | None = None) -> None:
        project = await self._load(project_id)
        if project is None or project.owner_id != owner_id:
            raise ProjectNotFoundError(project_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.delete(self._key(project_id))
            pipe.zrem(self._owner_key(owner_id), project_id)
            await pipe.execute()
        logger.info("Deleted project %s", project_id)

    async def close(self) -> None:
        await self._redis.aclose()


def create_project_store(store_type: str, redis_url: str = "") -> ProjectStore:
    """Build the configured store; falls back to memory without a Redis URL."""
    if store_type == "redis" and redis_url:
        logger.info("Initialized RedisProjectStore")
        return RedisProjectStore(redis_url)
    logger.info("Initialized InMemoryProjectStore")
    return InMemoryProjectStore()
