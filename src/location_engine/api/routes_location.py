"""Location resolution, cache control and network condition endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from location_engine.api.dependencies import get_engine
from location_engine.models.schemas import LocationResponse, NetworkResponse
from location_engine.pipeline.location_pipeline import LocationEngine

router = APIRouter()


@router.get("/location", response_model=LocationResponse)
async def location(
    response: Response,
    use_cache: bool = Query(default=True),
    force_refresh: bool = Query(default=False),
    engine: LocationEngine = Depends(get_engine),
) -> LocationResponse:
    result = await engine.resolve_location(use_cache=use_cache, force_refresh=force_refresh)
    if not result.success:
        # "Location unavailable": the body carries the reason, never a coordinate
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return LocationResponse(**result.to_dict())


@router.delete("/cache")
async def clear_cache(engine: LocationEngine = Depends(get_engine)) -> dict:
    await engine.clear_cache()
    return {"status": "cleared"}


@router.get("/network", response_model=NetworkResponse)
async def network(engine: LocationEngine = Depends(get_engine)) -> NetworkResponse:
    condition = await engine.detect_network_condition()
    return NetworkResponse(**condition.to_dict())
