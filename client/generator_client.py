"""HTTP client for the app builder service.

Wraps ``httpx.AsyncClient`` with:
- streamed ``POST /api/generate`` piped through the stream reader into a
  :class:`RenderDriver`
- ``/api/projects`` helpers for signed-in users (``X-User-Id``)

Usage::

    async with GenerationClient("http://localhost:5000") as client:
        artifact = await client.generate("a todo list")
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from client.render_driver import DriverStatus, RenderDriver, ViewState
from client.stream_reader import read_events
from errors.exceptions import (
    GenerationFailed,
    ProjectNotFoundError,
    TransportError,
    UpstreamError,
)
from models.artifact import GeneratedArtifact, Project
from models.events import SectionGrammar

logger = logging.getLogger(__name__)

_PROVIDER = "app-builder"
DEFAULT_TIMEOUT = 330.0  # a bit above the server's generation ceiling


class GenerationClient:
    """Async client for one app builder service."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        http_client: httpx.AsyncClient | None = None,
        user_id: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )
        self._user_id = user_id

    # -- lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> GenerationClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # -- generation ----------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        *,
        grammar: SectionGrammar | None = None,
        on_change: Callable[[ViewState], None] | None = None,
    ) -> GeneratedArtifact:
        """Run one generation and return the finalized artifact.

        Raises:
            GenerationFailed:  the server sent an ``error`` event.
            ProtocolViolation: the stream closed without a terminal event.
            UpstreamError:     the service answered with a non-success status.
            TransportError:    the connection failed.
        """
        body: dict[str, Any] = {"prompt": prompt}
        if grammar is not None:
            body["grammar"] = grammar.value

        driver: RenderDriver | None = None
        try:
            async with self._http.stream("POST", "/api/generate", json=body) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise UpstreamError(response.status_code, body=response.text, provider=_PROVIDER)

                wire_grammar = _grammar_from_header(
                    response.headers.get("x-section-grammar"), grammar
                )
                driver = RenderDriver(wire_grammar, on_change=on_change)
                async for event in read_events(response.aiter_text()):
                    driver.handle(event)
                    if driver.finished:
                        break
        except httpx.TransportError as exc:
            logger.warning("Generation stream broke: %s", exc)
            raise TransportError(f"connection to the service failed: {exc}") from exc

        driver.end_of_stream()
        if driver.status != DriverStatus.DONE or driver.artifact is None:
            raise GenerationFailed(driver.error_message or "generation failed")
        return driver.artifact

    # -- projects ------------------------------------------------------------

    async def save_project(self, name: str, artifact: GeneratedArtifact) -> Project:
        response = await self._request(
            "POST", "/api/projects", json={"name": name, **artifact.model_dump()}
        )
        return Project.model_validate(response.json())

    async def list_projects(self) -> list[Project]:
        response = await self._request("GET", "/api/projects")
        return [Project.model_validate(item) for item in response.json()]

    async def get_project(self, project_id: str) -> Project:
        response = await self._request("GET", f"/api/projects/{project_id}", project_id=project_id)
        return Project.model_validate(response.json())

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/api/projects/{project_id}", project_id=project_id)

    async def _request(
        self, method: str, path: str, *, project_id: str | None = None, **kwargs: Any
    ) -> httpx.Response:
        if not self._user_id:
            raise RuntimeError("Project endpoints need a user_id; use LocalProjectStore for guests")
        try:
            response = await self._http.request(
                method, path, headers={"X-User-Id": self._user_id}, **kwargs
            )
        except httpx.TransportError as exc:
            raise TransportError(f"connection to the service failed: {exc}") from exc
        if response.status_code == 404 and project_id is not None:
            raise ProjectNotFoundError(project_id)
        if response.status_code >= 400:
            raise UpstreamError(response.status_code, body=response.text, provider=_PROVIDER)
        return response


def _grammar_from_header(value: str | None, fallback: SectionGrammar | None) -> SectionGrammar:
    try:
        return SectionGrammar(value)
    except ValueError:
        logger.debug("Missing or unknown X-Section-Grammar %r, using fallback", value)
        return fallback or SectionGrammar.MARKER
