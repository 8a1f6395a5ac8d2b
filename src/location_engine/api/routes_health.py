"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from location_engine.api.dependencies import get_engine
from location_engine.models.schemas import HealthResponse
from location_engine.pipeline.location_pipeline import LocationEngine

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(engine: LocationEngine = Depends(get_engine)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        providers=[cp.name for cp in engine.providers],
        hybrid_enabled=engine.config.hybrid_enabled,
        cache_ttl_seconds=engine.config.cache_ttl_seconds,
    )
