"""FastAPI middleware: request IDs and heavy-path concurrency limits.

Both are pure ASGI (no BaseHTTPMiddleware) so SSE responses keep streaming.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Iterable

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

DEFAULT_HEAVY_PATHS = frozenset({
    "/api/generate",
    "/api/chat",
    "/api/generate-image",
    "/api/generate-video",
})


class RequestIdMiddleware:
    """Inject a unique request ID into every HTTP request/response.

    If the client sends ``X-Request-ID``, it is reused; otherwise a short
    UUID is generated. The ID is returned in the response headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(b"x-request-id", b"").decode() or str(uuid.uuid4())[:8]

        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_request_id)


class ConcurrencyLimitMiddleware:
    """Reject heavy requests when the worker is at capacity.

    Returns HTTP 503 with a Retry-After header instead of queuing.  Light
    endpoints (health, projects, unlock) pass through unaffected.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_concurrent: int = 15,
        heavy_paths: Iterable[str] = DEFAULT_HEAVY_PATHS,
    ) -> None:
        self.app = app
        self._max_concurrent = max_concurrent
        self._heavy_paths = frozenset(heavy_paths)
        self._semaphore: asyncio.Semaphore | None = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the running event loop.
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
            logger.info("Heavy endpoint semaphore initialized (max=%d)", self._max_concurrent)
        return self._semaphore

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") not in self._heavy_paths:
            await self.app(scope, receive, send)
            return

        sem = self._get_semaphore()
        if sem.locked():
            logger.warning("Concurrency limit reached for %s, returning 503", scope["path"])
            body = json.dumps(
                {"detail": "Server busy, too many concurrent requests. Please retry."}
            ).encode()
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"retry-after", b"5"),
                ],
            })
            await send({"type": "http.response.body", "body": body})
            return

        async with sem:
            await self.app(scope, receive, send)
