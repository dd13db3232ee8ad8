"""Guest-mode project store backed by a JSON file on this machine.

Same interface as the server-side stores, so a client can switch between
local (guest) and remote (signed-in) persistence without branching.  File
reads and writes run in a worker thread; a lock serializes read-modify-write
updates within one process.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from errors.exceptions import ProjectNotFoundError
from models.artifact import GeneratedArtifact, Project
from services.project_store import ProjectStore, newest_first, visible_to

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path.home() / ".app-builder" / "projects.json"


class LocalProjectStore(ProjectStore):
    """Projects persisted as ``{"projects": [...]}`` in a local file."""

    def __init__(self, path: str | Path = DEFAULT_PATH) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> list[Project]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable project file %s, starting empty", self._path, exc_info=True)
            return []
        projects: list[Project] = []
        for item in data.get("projects", []):
            try:
                projects.append(Project.model_validate(item))
            except Exception:
                logger.warning("Skipping malformed project entry in %s", self._path)
        return projects

    def _write(self, projects: list[Project]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"projects": [p.model_dump(mode="json") for p in projects]}
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    async def save(
        self, name: str, files: GeneratedArtifact, owner_id: str | None = None
    ) -> Project:
        project = Project(name=name, owner_id=owner_id, **files.model_dump())
        async with self._lock:
            projects = await asyncio.to_thread(self._read)
            projects.append(project)
            await asyncio.to_thread(self._write, projects)
        logger.info("Saved project %s (%r) to %s", project.id, name, self._path)
        return project

    async def list(self, owner_id: str | None = None) -> list[Project]:
        projects = await asyncio.to_thread(self._read)
        return newest_first([p for p in projects if p.owner_id == owner_id])

    async def get(self, project_id: str, owner_id: str | None = None) -> Project:
        for project in await asyncio.to_thread(self._read):
            if project.id == project_id and visible_to(project, owner_id):
                return project
        raise ProjectNotFoundError(project_id)

    async def delete(self, project_id: str, owner_id: str | None = None) -> None:
        async with self._lock:
            projects = await asyncio.to_thread(self._read)
            kept = [p for p in projects if not (p.id == project_id and p.owner_id == owner_id)]
            if len(kept) == len(projects):
                raise ProjectNotFoundError(project_id)
            await asyncio.to_thread(self._write, kept)
        logger.info("Deleted project %s from %s", project_id, self._path)
