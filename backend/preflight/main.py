"""Preflight API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PreflightError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Chain/relay clients initialized on startup and closed on shutdown via lifespan
    - Idle flow sweeper runs for the lifetime of the app

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Open flows closed on shutdown so no fetch task outlives the event loop
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from preflight.api.error_handlers import register_error_handlers
from preflight.api.routes import health, preflight_lifecycle, preflight_stream
from preflight.config import get_settings
from preflight.infrastructure.clients import close_clients, init_clients
from preflight.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_clients(settings)
    sweeper = asyncio.create_task(
        preflight_lifecycle.run_idle_sweeper(
            settings.flow_sweep_interval_seconds,
            settings.flow_idle_timeout_seconds,
        ),
        name="preflight-idle-sweeper",
    )
    logger.info("Preflight API started")
    yield
    sweeper.cancel()
    for preflight_id in list(preflight_lifecycle._flows):
        preflight_lifecycle.discard_flow(preflight_id)
    await close_clients()
    logger.info("Preflight API shutting down")


app = FastAPI(
    title="Preflight API", version="1.0.0", lifespan=lifespan,
)

# CORS: configured from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(preflight_lifecycle.router)
app.include_router(preflight_stream.router)

register_error_handlers(app)
