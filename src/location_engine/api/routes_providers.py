"""Operational endpoints: reliability assessment and configuration optimization."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from location_engine.api.dependencies import get_engine
from location_engine.exceptions import ConfigurationError, LocationEngineError
from location_engine.models.schemas import (
    AssessmentResponse,
    AssessRequest,
    OptimizeRequest,
    RankedConfigResponse,
)
from location_engine.pipeline.location_pipeline import LocationEngine

router = APIRouter()


@router.post("/providers/assess", response_model=list[AssessmentResponse])
async def assess(
    request: AssessRequest,
    engine: LocationEngine = Depends(get_engine),
) -> list[AssessmentResponse]:
    try:
        assessments = await engine.assess_provider_reliability(request.iterations)
    except LocationEngineError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [
        AssessmentResponse(
            endpoint=a.endpoint,
            attempts=a.attempts,
            successes=a.successes,
            avg_response_time_ms=a.avg_response_time_ms,
            reliability_score=a.reliability_score,
            errors=list(a.errors),
        )
        for a in assessments
    ]


@router.post("/config/optimize", response_model=RankedConfigResponse)
async def optimize(
    request: OptimizeRequest,
    engine: LocationEngine = Depends(get_engine),
) -> RankedConfigResponse:
    try:
        ranked = await engine.optimize_configuration(
            preferences=request.preferences,
            consent_granted=request.consent_granted,
            max_response_time_ms=request.max_response_time_ms,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LocationEngineError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return RankedConfigResponse(**ranked.to_dict())
