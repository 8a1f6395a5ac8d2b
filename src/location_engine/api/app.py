"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from location_engine.api.middleware import RequestTimingMiddleware
from location_engine.api.routes_health import router as health_router
from location_engine.api.routes_location import router as location_router
from location_engine.api.routes_providers import router as providers_router
from location_engine.config.settings import Settings
from location_engine.observability.logger import get_logger, setup_logging
from location_engine.pipeline.location_pipeline import create_engine
from location_engine.protocols.provider import PlatformLocationService

logger = get_logger("app")


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    location_service: PlatformLocationService | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = settings or Settings()
        setup_logging(active.log_level, json_output=active.log_json)

        engine = await create_engine(
            active, transport=transport, location_service=location_service
        )

        app.state.engine = engine
        app.state.settings = active

        logger.info(
            "startup_complete",
            providers=[cp.name for cp in engine.providers],
            hybrid_enabled=engine.config.hybrid_enabled,
            cache_ttl_seconds=engine.config.cache_ttl_seconds,
        )

        yield

        await engine.clear_cache()
        logger.info("shutdown_complete")

    app = FastAPI(
        title="Location Reliability Engine",
        version="1.0.0",
        description="Multi-provider location resolution with reliability-aware selection",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(location_router, tags=["location"])
    app.include_router(providers_router, tags=["providers"])
    return app
