"""
FastAPI application entry point.

Startup sequence:
  1. Configure logging
  2. Connect the database (failures leave it disconnected; /health shows it)
  3. Optionally preload the toxicity model
  4. Start serving

Shutdown (SIGTERM/SIGINT, handled by uvicorn): stop accepting connections,
drain in-flight requests, then leave the lifespan, which closes the database.

Run locally:
    uvicorn toxguard.main:app --reload --host 0.0.0.0 --port 5000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from toxguard.api.router import api_router
from toxguard.core.config import Settings, settings
from toxguard.core.errors import UnhandledErrorMiddleware, register_exception_handlers
from toxguard.core.logging_config import configure_logging
from toxguard.core.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from toxguard.db.session import Database
from toxguard.models.loader import ModelGate

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — database held for the whole run, released on every exit path."""
    app_settings: Settings = app.state.settings
    configure_logging(app_settings.log_level)
    logger.info("Starting %s v%s", app_settings.app_title, app_settings.app_version)

    database: Database = app.state.database
    async with database.lifetime():
        if app_settings.preload_model:
            try:
                await app.state.model_gate.ensure_loaded(app_settings.default_threshold)
            except Exception as exc:
                logger.error("Model preload failed, will load on first request: %s", exc)

        logger.info("Application ready — database %s.", database.state.value)
        yield
        logger.info("Shutting down application.")

    logger.info("Server and DB connections closed.")


def create_app(
    app_settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    model_gate: Optional[ModelGate] = None,
) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title=app_settings.app_title,
        version=app_settings.app_version,
        description=app_settings.app_description,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = app_settings
    app.state.database = database or Database(
        app_settings.database_url,
        echo=app_settings.database_echo,
        ping_timeout=app_settings.database_ping_timeout,
    )
    app.state.model_gate = model_gate or ModelGate()

    # ── Middleware (last added is outermost) ────────────────────────────────
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowRateLimiter(
            max_requests=app_settings.rate_limit_max,
            window_seconds=app_settings.rate_limit_window_seconds,
        ),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Errors ─────────────────────────────────────────────────────────────
    register_exception_handlers(app, expose_details=app_settings.expose_error_details)

    # ── Routes ─────────────────────────────────────────────────────────────
    app.include_router(api_router)

    return app


app = create_app()
