"""FastAPI entry point for the Deepseeks app builder service."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.chat import router as chat_router
from api.generate import router as generate_router
from api.health import router as health_router
from api.media import router as media_router
from api.projects import router as projects_router
from api.unlock import router as unlock_router
from config.settings import get_settings
from services.llm_service import LLMService
from services.media_client import MediaClient
from services.middleware import ConcurrencyLimitMiddleware, RequestIdMiddleware
from services.project_store import RedisProjectStore, create_project_store
from services.unlock_ledger import RedisUnlockLedger, create_unlock_ledger

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: build and release shared services."""
    media_client = MediaClient(settings)
    await media_client.start()
    if not media_client.configured:
        logger.warning("DEEPINFRA_API_KEY not set, media endpoints will answer 500")

    project_store = create_project_store(settings.project_store_type, settings.redis_url)
    unlock_ledger = create_unlock_ledger(settings)

    app.state.media_client = media_client
    app.state.project_store = project_store
    app.state.unlock_ledger = unlock_ledger
    app.state.llm_service = LLMService()

    yield

    if isinstance(project_store, RedisProjectStore):
        await project_store.close()
    if isinstance(unlock_ledger, RedisUnlockLedger):
        await unlock_ledger.close()
    await media_client.close()


app = FastAPI(
    title="Deepseeks App Builder",
    description="Prompt-to-app generation streamed as html/css/js sections",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
# Order matters: CORS → RequestId → ConcurrencyLimit → route handler
app.add_middleware(ConcurrencyLimitMiddleware, max_concurrent=settings.max_concurrent_generations)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Section-Grammar", "X-Request-ID"],
)

# ── Register routers ────────────────────────────────────────
app.include_router(health_router)
app.include_router(generate_router)
app.include_router(chat_router)
app.include_router(media_router)
app.include_router(projects_router)
app.include_router(unlock_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
        timeout_keep_alive=120,
    )
