"""Shared pytest fixtures for the app builder tests.

Provides:
- ``settings``: isolated Settings (no .env), media key set
- ``project_store`` / ``unlock_ledger``: fresh in-memory backends per test
- ``scripted_source``: factory for fake token sources replaying scripted deltas
- ``app_client``: httpx client over ASGITransport with all services overridden
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from api.deps import (
    get_llm_service,
    get_media_client,
    get_project_store,
    get_token_source_factory,
    get_unlock_ledger,
)
from config.settings import Settings, get_settings
from main import app
from services.media_client import MediaClient
from services.project_store import InMemoryProjectStore
from services.unlock_ledger import InMemoryUnlockLedger


# ── Fake token source ────────────────────────────────────────────


class ScriptedSource:
    """Stand-in for TokenStreamSource that replays a script.

    Script items are delta strings or exceptions; an exception is raised
    when iteration reaches it.
    """

    def __init__(self, script: list[Any], prompt: str, **kwargs: Any) -> None:
        self.script = script
        self.prompt = prompt
        self.kwargs = kwargs
        self.opened = False
        self.closed = False
        self.delivered = 0

    async def __aenter__(self) -> ScriptedSource:
        self.opened = True
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.closed = True

    def __aiter__(self):
        return self._run()

    async def _run(self):
        for item in self.script:
            if isinstance(item, BaseException):
                raise item
            self.delivered += 1
            yield item


class ScriptedSourceFactory:
    def __init__(self, script: list[Any]) -> None:
        self.script = script
        self.sources: list[ScriptedSource] = []

    def __call__(self, prompt: str, **kwargs: Any) -> ScriptedSource:
        source = ScriptedSource(self.script, prompt, **kwargs)
        self.sources.append(source)
        return source

    @property
    def last(self) -> ScriptedSource:
        return self.sources[-1]


@pytest.fixture
def scripted_source():
    """``scripted_source([...])`` → a factory usable as ``source_factory``."""
    return ScriptedSourceFactory


# ── Settings & backends ──────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        deepinfra_api_key="test-key",
        deepinfra_base_url="https://deepinfra.test/v1",
        generation_timeout=5.0,
    )


@pytest.fixture
def project_store() -> InMemoryProjectStore:
    return InMemoryProjectStore()


@pytest.fixture
def unlock_ledger() -> InMemoryUnlockLedger:
    return InMemoryUnlockLedger()


class FakeLLMService:
    def __init__(self, reply: str = "Hello from Mr. Deepseeks") -> None:
        self.reply = reply
        self.calls: list[tuple[str, str]] = []
        self.error: BaseException | None = None

    async def chat(self, message: str, system: str = "", **overrides) -> str:
        self.calls.append((message, system))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def llm_service() -> FakeLLMService:
    return FakeLLMService()


def deepinfra_handler(request: httpx.Request) -> httpx.Response:
    """Canned DeepInfra answers keyed by path."""
    path = request.url.path
    if path.endswith("/openai/images/generations"):
        return httpx.Response(200, json={"data": [{"b64_json": "aW1n"}]})
    if "Wan2.1" in path:
        return httpx.Response(200, json={"video_url": "https://cdn.test/v.mp4"})
    if "Janus" in path:
        return httpx.Response(200, json={"output": "A cat on a sofa."})
    return httpx.Response(404, text="unknown model")


@pytest.fixture
async def media_client(settings):
    client = MediaClient(settings, transport=httpx.MockTransport(deepinfra_handler))
    await client.start()
    yield client
    await client.close()


# ── App client ───────────────────────────────────────────────────


@pytest.fixture
def source_factory(scripted_source):
    """Default generation script for API tests; tests may replace ``.script``."""
    return scripted_source(["=== HTML ===\n<h1>Hi</h1>\n", "=== CSS ===\nh1{color:red}", "\n=== JS ===\nconsole.log(1)"])


@pytest.fixture
async def app_client(settings, project_store, unlock_ledger, media_client, llm_service, source_factory):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_project_store] = lambda: project_store
    app.dependency_overrides[get_unlock_ledger] = lambda: unlock_ledger
    app.dependency_overrides[get_media_client] = lambda: media_client
    app.dependency_overrides[get_llm_service] = lambda: llm_service
    app.dependency_overrides[get_token_source_factory] = lambda: source_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
