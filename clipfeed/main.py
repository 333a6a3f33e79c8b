"""
Clipfeed API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Connect to Redis (feed candidate cache)
  4. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from clipfeed.config import settings
from clipfeed.database import engine, init_db
from clipfeed.telemetry import setup_tracing, instrument_app
from clipfeed.clients.redis_client import close_redis, init_redis
from clipfeed.routers import conversations, feed, videos

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Clipfeed API (env=%s)", settings.environment)

    await init_db()
    await init_redis()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Clipfeed API",
    description=(
        "Short-video feed with coin-boosted weighted sampling and "
        "one-to-one direct messaging."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(feed.router, prefix="/feed", tags=["Feed"])
app.include_router(videos.router, prefix="/videos", tags=["Videos"])
app.include_router(conversations.router, prefix="/conversations", tags=["Conversations"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
