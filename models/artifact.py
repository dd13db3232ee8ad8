"""Generated artifacts and persisted projects."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from models.base import CamelModel
from models.events import Channel


class GeneratedArtifact(BaseModel):
    """Finalized ``{html, css, js}`` output of one generation."""

    html: str = ""
    css: str = ""
    js: str = ""

    def channel(self, channel: Channel) -> str:
        return getattr(self, channel.value)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_project_id() -> str:
    return str(uuid.uuid4())


class Project(CamelModel):
    """A saved artifact, keyed by a user-chosen name."""

    id: str = Field(default_factory=generate_project_id)
    name: str
    html: str = ""
    css: str = ""
    js: str = ""
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    owner_id: str | None = None
    is_public: bool = False
