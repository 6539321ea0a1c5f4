"""
Main entry point for the cement plant advisory service.

Creates the FastAPI application instance for uvicorn:

    uvicorn cement_ops.main:app --port 8090
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cement_ops.api.dependencies import ServiceContainer, build_services
from cement_ops.api.error_handlers import register_error_handlers
from cement_ops.api.routes import (
    health_router,
    insights_router,
    proposals_router,
    telemetry_router,
)
from cement_ops.api.routes.health import set_service_start_time
from cement_ops.core.config import get_settings
from cement_ops.core.logging import configure_logging, get_logger


# Configure structured logging on module load
configure_logging()
logger = get_logger(__name__)


def _make_lifespan(services: ServiceContainer | None):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager.

        On startup: build clients, load telemetry history, wire the pipeline
        On shutdown: stop background refresh, release HTTP clients
        """
        settings = services.settings if services is not None else get_settings()
        logger.info("Starting advisory service", port=settings.port, role="Advisor")
        set_service_start_time()

        container = services or await build_services(settings)
        app.state.services = container

        refresh_task: asyncio.Task[None] | None = None
        if settings.recommendation_interval_seconds > 0:
            refresh_task = asyncio.create_task(container.recommendations.run_periodic())

        yield

        logger.info("Shutting down advisory service")
        if refresh_task is not None:
            refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await refresh_task
        await container.close()
        logger.info("Clients closed")

    return lifespan


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built components; built from settings on startup when None
    """
    app = FastAPI(
        title="Cement Plant Advisory Service",
        description="Multi-agent LLM optimization proposals for cement plant operations",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_make_lifespan(services),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(telemetry_router)
    app.include_router(proposals_router)
    app.include_router(insights_router)

    return app


# Create application instance
app = create_app()
