"""Project API: save, list, load and delete generated apps.

Signed-in users only (``X-User-Id``).  Guests keep projects locally with
``client.local_store.LocalProjectStore``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from api.deps import get_project_store, require_user_id
from errors.exceptions import ProjectNotFoundError
from models.artifact import GeneratedArtifact, Project
from models.errors import ErrorCode, format_error
from models.request import SaveProjectRequest
from services.project_store import ProjectStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _not_found(exc: ProjectNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=format_error(ErrorCode.NOT_FOUND, str(exc)))


@router.post("", response_model=Project, status_code=201)
async def save_project(
    req: SaveProjectRequest,
    user_id: str = Depends(require_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    files = GeneratedArtifact(html=req.html, css=req.css, js=req.js)
    return await store.save(req.name.strip() or req.name, files, owner_id=user_id)


@router.get("", response_model=list[Project])
async def list_projects(
    user_id: str = Depends(require_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    return await store.list(owner_id=user_id)


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    user_id: str = Depends(require_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    try:
        return await store.get(project_id, owner_id=user_id)
    except ProjectNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    user_id: str = Depends(require_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    try:
        await store.delete(project_id, owner_id=user_id)
    except ProjectNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=204)
