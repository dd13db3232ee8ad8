"""HTTP client for DeepInfra media models (vision, image and video generation).

Wraps ``httpx.AsyncClient`` with:
- bearer-token auth from ``DEEPINFRA_API_KEY``
- one connection pool tied to the FastAPI lifespan
- provider failures mapped onto :class:`UpstreamError` / :class:`TransportError`

No retries: a failed media call is reported to the caller as-is.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

import httpx

from config.settings import Settings
from errors.exceptions import ServiceNotConfiguredError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

_PROVIDER = "deepinfra"
_VISION_MAX_NEW_TOKENS = 512
_VISION_TEMPERATURE = 0.7


class MediaClient:
    """Async client for the three DeepInfra endpoints the app uses."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.deepinfra_base_url.rstrip("/")
        self._api_key = settings.deepinfra_api_key
        self._timeout = settings.media_timeout
        self._vision_model = settings.vision_model
        self._image_model = settings.image_model
        self._image_size = settings.image_size
        self._video_model = settings.video_model
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Create the underlying ``httpx.AsyncClient`` connection pool."""
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers={"Authorization": f"Bearer {self._api_key}"},
            transport=self._transport,
        )
        logger.info("MediaClient started, base_url=%s", self._base_url)

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.info("MediaClient closed")

    # -- public API ----------------------------------------------------------

    async def analyze_image(self, image: bytes, question: str) -> str:
        """Ask the vision model a question about *image*; returns its answer."""
        data = await self._post(
            f"/inference/{self._vision_model}",
            {
                "input": {
                    "image": base64.b64encode(image).decode("ascii"),
                    "prompt": question,
                    "max_new_tokens": _VISION_MAX_NEW_TOKENS,
                    "temperature": _VISION_TEMPERATURE,
                }
            },
        )
        answer = data.get("output")
        if not answer and data.get("results"):
            answer = data["results"][0]
        if not isinstance(answer, str) or not answer:
            raise UpstreamError(200, body="vision response missing output", provider=_PROVIDER)
        return answer

    async def generate_image(self, prompt: str) -> str:
        """Generate one image; returns it as a ``data:`` URL."""
        data = await self._post(
            "/openai/images/generations",
            {
                "prompt": prompt,
                "size": self._image_size,
                "model": self._image_model,
                "n": 1,
            },
        )
        try:
            b64 = data["data"][0]["b64_json"]
        except (KeyError, IndexError, TypeError):
            raise UpstreamError(200, body="image response missing data", provider=_PROVIDER) from None
        return f"data:image/jpeg;base64,{b64}"

    async def generate_video(self, prompt: str) -> str:
        """Generate a short video; returns the provider's video URL."""
        data = await self._post(f"/inference/{self._video_model}", {"prompt": prompt})
        url = data.get("video_url")
        if not url:
            raise UpstreamError(200, body="video response missing video_url", provider=_PROVIDER)
        return url

    # -- internals -----------------------------------------------------------

    def _ensure_started(self) -> httpx.AsyncClient:
        if not self.configured:
            raise ServiceNotConfiguredError("Media generation")
        if self._http is None:
            raise RuntimeError("MediaClient not started. Call start() first.")
        return self._http

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        client = self._ensure_started()
        t0 = time.monotonic()
        try:
            response = await client.post(path, json=body)
        except httpx.TransportError as exc:
            logger.warning("DeepInfra %s unreachable: %s", path, exc)
            raise TransportError(f"media provider unreachable: {exc}") from exc

        elapsed = (time.monotonic() - t0) * 1000
        logger.info("DeepInfra POST %s → %d (%.0fms)", path, response.status_code, elapsed)

        if response.status_code >= 400:
            raise UpstreamError(response.status_code, body=response.text[:500], provider=_PROVIDER)
        try:
            data = response.json()
        except ValueError:
            raise UpstreamError(
                response.status_code, body="response is not JSON", provider=_PROVIDER
            ) from None
        if not isinstance(data, dict):
            raise UpstreamError(response.status_code, body="unexpected response shape", provider=_PROVIDER)
        return data
