"""FastAPI entry point for the Newsdesk stream client."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from services.stream_client import get_stream_client
from services.summary_store import RedisSummaryStore, get_summary_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: start and stop shared resources."""
    client = get_stream_client()
    await client.start()

    store = get_summary_store()
    if isinstance(store, RedisSummaryStore):
        if await store.ping():
            logger.info("Redis connection verified")
        else:
            logger.warning("Redis connection failed; last summary will not persist")

    if await store.load_last():
        logger.info("Previous summary available at /api/summaries/last")

    yield

    await store.close()
    await client.close()


app = FastAPI(
    title="Newsdesk Stream Client",
    description="Consumes NDJSON generation streams and renders them incrementally",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.streams import router as streams_router  # noqa: E402
from api.summaries import router as summaries_router  # noqa: E402

app.include_router(health_router)
app.include_router(summaries_router)
app.include_router(streams_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
    )
