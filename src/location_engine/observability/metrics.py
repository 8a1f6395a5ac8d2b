"""Metric recording helpers for resolution cycles and assessments."""

from __future__ import annotations

from location_engine.models.domain import LocationResult, ReliabilityAssessment
from location_engine.observability.logger import get_logger

logger = get_logger("metrics")


def log_probe_metrics(trace_id: str, provider: str, result: LocationResult) -> None:
    logger.info(
        "probe_metrics",
        trace_id=trace_id,
        provider=provider,
        success=result.success,
        source=result.source,
        error_kind=result.error_kind.value if result.error_kind else None,
        duration_ms=round(result.response_time_ms, 2),
    )


def log_resolution_metrics(
    trace_id: str,
    result: LocationResult,
    probed: int,
    succeeded: int,
    latency_ms: float,
) -> None:
    logger.info(
        "resolution_metrics",
        trace_id=trace_id,
        success=result.success,
        source=result.source,
        weight=result.weight,
        probed=probed,
        succeeded=succeeded,
        latency_ms=round(latency_ms, 2),
    )


def log_assessment_metrics(assessment: ReliabilityAssessment) -> None:
    avg = assessment.avg_response_time_ms
    logger.info(
        "assessment_metrics",
        endpoint=assessment.endpoint,
        attempts=assessment.attempts,
        successes=assessment.successes,
        avg_response_time_ms=round(avg, 2) if avg is not None else None,
        reliability_score=assessment.reliability_score,
    )
