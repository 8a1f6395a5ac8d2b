"""Reliability scoring: SCORE = 0.5*success + 0.3*latency + 0.2*consistency (0-100)."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import numpy as np

from location_engine.config.constants import (
    CONSISTENCY_TOLERANCE_KM,
    DEFAULT_IP_TIMEOUT,
    LATENCY_MS_PER_POINT,
    RELIABILITY_W_CONSISTENCY,
    RELIABILITY_W_LATENCY,
    RELIABILITY_W_SUCCESS,
)
from location_engine.geo.distance import max_pairwise_distance_km
from location_engine.models.domain import LocationResult, ReliabilityAssessment
from location_engine.observability.logger import get_logger
from location_engine.observability.metrics import log_assessment_metrics
from location_engine.providers.ip_geolocation import IPGeolocationProvider
from location_engine.providers.registry import ConfiguredProvider

logger = get_logger("reliability")


def success_score(assessment: ReliabilityAssessment) -> float:
    return assessment.success_rate * 100.0


def latency_score(assessment: ReliabilityAssessment) -> float:
    if not assessment.response_times_ms:
        return 0.0
    avg_ms = float(np.mean(list(assessment.response_times_ms)))
    return max(0.0, 100.0 - avg_ms / LATENCY_MS_PER_POINT)


def consistency_score(assessment: ReliabilityAssessment) -> float:
    # Fewer than two fixes is not evidence of inconsistency
    if len(assessment.coordinates) < 2:
        return 100.0
    spread_km = max_pairwise_distance_km(assessment.coordinates)
    if spread_km <= CONSISTENCY_TOLERANCE_KM:
        return 100.0
    return max(0.0, 100.0 - (spread_km - CONSISTENCY_TOLERANCE_KM))


def reliability_score(assessment: ReliabilityAssessment) -> float:
    score = (
        RELIABILITY_W_SUCCESS * success_score(assessment)
        + RELIABILITY_W_LATENCY * latency_score(assessment)
        + RELIABILITY_W_CONSISTENCY * consistency_score(assessment)
    )
    return round(max(0.0, min(100.0, score)), 1)


class ReliabilityAssessor:
    """Repeatedly probes provider endpoints and scores them.

    Offline tooling only; never called on the per-cycle resolution path.
    """

    def __init__(
        self,
        ip_provider: IPGeolocationProvider,
        timeout: float = DEFAULT_IP_TIMEOUT,
        pause_seconds: float = 0.0,
    ) -> None:
        self._ip = ip_provider
        self._timeout = timeout
        self._pause = pause_seconds

    async def assess_ip_endpoints(
        self, iterations: int = 3, endpoints: list[str] | None = None
    ) -> list[ReliabilityAssessment]:
        names = endpoints or self._ip.endpoint_names
        assessments = await asyncio.gather(
            *(
                self._measure(
                    name,
                    lambda name=name: self._ip.lookup(name, self._timeout),
                    iterations,
                )
                for name in names
            )
        )
        return self._rank(list(assessments))

    async def assess_providers(
        self, providers: tuple[ConfiguredProvider, ...], iterations: int = 3
    ) -> list[ReliabilityAssessment]:
        """Score whole providers (any kind) by calling resolve repeatedly."""
        assessments = await asyncio.gather(
            *(
                self._measure(
                    cp.name,
                    lambda cp=cp: cp.provider.resolve(cp.timeout),
                    iterations,
                )
                for cp in providers
            )
        )
        return self._rank(list(assessments))

    async def _measure(
        self,
        label: str,
        call: Callable[[], Awaitable[LocationResult]],
        iterations: int,
    ) -> ReliabilityAssessment:
        assessment = ReliabilityAssessment(endpoint=label)
        for i in range(max(1, iterations)):
            if i and self._pause:
                await asyncio.sleep(self._pause)
            assessment.attempts += 1
            try:
                result = await call()
            except Exception as e:
                # A misbehaving endpoint must not abort the whole assessment
                logger.warning("assessment_call_raised", endpoint=label, error=str(e))
                assessment.errors.append(str(e))
                continue

            if result.success:
                # Only answered calls count toward latency
                assessment.response_times_ms.append(result.response_time_ms)
                assessment.successes += 1
                assessment.coordinates.append(result.coordinates)
            else:
                assessment.errors.append(result.error or "unknown error")

        assessment.reliability_score = reliability_score(assessment)
        log_assessment_metrics(assessment)
        return assessment

    @staticmethod
    def _rank(assessments: list[ReliabilityAssessment]) -> list[ReliabilityAssessment]:
        return sorted(assessments, key=lambda a: a.reliability_score, reverse=True)
