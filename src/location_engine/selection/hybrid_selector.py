"""Hybrid provider selection: probe providers concurrently, keep the highest-weight answer."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from location_engine.config.constants import DEFAULT_AVAILABILITY_TIMEOUT, DEFAULT_CYCLE_DEADLINE
from location_engine.exceptions import AllProvidersExhausted
from location_engine.models.domain import ErrorKind, LocationMethod, LocationResult
from location_engine.observability.logger import get_logger
from location_engine.observability.metrics import log_probe_metrics, log_resolution_metrics
from location_engine.observability.tracing import TraceContext
from location_engine.providers.registry import ConfiguredProvider

logger = get_logger("hybrid_selector")

EXHAUSTED = AllProvidersExhausted.__name__

# Slack on top of a provider's own timeout before the selector cancels it
_PROBE_GRACE_SECONDS = 0.5


@dataclass(frozen=True)
class ProbeOutcome:
    name: str
    priority: int
    result: LocationResult


def select_best(outcomes: list[ProbeOutcome]) -> ProbeOutcome | None:
    """Highest weight wins; ties go to the earliest provider in priority order."""
    successes = [o for o in outcomes if o.result.success]
    if not successes:
        return None
    return min(successes, key=lambda o: (-o.result.weight, o.priority))


class HybridSelector:
    """Runs one resolution cycle over an ordered provider tuple.

    Provider failures are logged and swallowed; only total exhaustion comes
    back as a failed result. Nothing is retried within a cycle.
    """

    def __init__(
        self,
        cycle_deadline: float = DEFAULT_CYCLE_DEADLINE,
        availability_timeout: float = DEFAULT_AVAILABILITY_TIMEOUT,
        min_short_circuit_weight: float | None = None,
    ) -> None:
        self._cycle_deadline = cycle_deadline
        self._availability_timeout = availability_timeout
        self._min_short_circuit_weight = min_short_circuit_weight

    async def resolve(
        self,
        providers: tuple[ConfiguredProvider, ...],
        trace: TraceContext | None = None,
    ) -> LocationResult:
        trace = trace or TraceContext()
        deadline = time.monotonic() + self._cycle_deadline

        with trace.span("availability"):
            available = await self._available(providers)
        outcomes = await self._probe_all(available, deadline, trace)
        # Probes cancelled by short-circuit or deadline do not count as consulted
        consulted = tuple(o.name for o in outcomes)
        best = select_best(outcomes)

        if best is None:
            result = LocationResult.failure(
                LocationMethod.HYBRID, EXHAUSTED, AllProvidersExhausted.kind
            ).as_hybrid(consulted)
            logger.warning(
                "all_providers_exhausted",
                trace_id=trace.trace_id,
                consulted=list(consulted),
                errors={o.name: o.result.error for o in outcomes},
            )
        else:
            result = best.result.as_hybrid(consulted)
            logger.info(
                "resolution_complete",
                trace_id=trace.trace_id,
                winner=best.name,
                weight=best.result.weight,
                consulted=list(consulted),
            )

        log_resolution_metrics(
            trace.trace_id,
            result,
            probed=len(outcomes),
            succeeded=sum(1 for o in outcomes if o.result.success),
            latency_ms=trace.elapsed_ms,
        )
        return result

    async def resolve_first(
        self,
        providers: tuple[ConfiguredProvider, ...],
        trace: TraceContext | None = None,
    ) -> LocationResult:
        """Non-hybrid mode: sequential, first success wins, method left as the provider's."""
        trace = trace or TraceContext()
        deadline = time.monotonic() + self._cycle_deadline

        with trace.span("availability"):
            available = await self._available(providers)
        consulted: list[str] = []
        for priority, cp in available:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("cycle_deadline_reached", trace_id=trace.trace_id)
                break
            consulted.append(cp.name)
            outcome = await self._probe(cp, priority, trace, min(cp.timeout, remaining))
            if outcome.result.success:
                logger.info("resolution_complete", trace_id=trace.trace_id, winner=cp.name)
                return outcome.result

        logger.warning("all_providers_exhausted", trace_id=trace.trace_id, consulted=consulted)
        return LocationResult.failure(
            LocationMethod.HYBRID, EXHAUSTED, AllProvidersExhausted.kind
        ).as_hybrid(tuple(consulted))

    async def _available(
        self, providers: tuple[ConfiguredProvider, ...]
    ) -> list[tuple[int, ConfiguredProvider]]:
        checks = await asyncio.gather(
            *(self.check_available(cp) for cp in providers)
        )
        available = []
        for priority, (cp, ok) in enumerate(zip(providers, checks)):
            if ok:
                available.append((priority, cp))
            else:
                logger.info("provider_skipped", provider=cp.name, reason="unavailable")
        return available

    async def check_available(self, cp: ConfiguredProvider) -> bool:
        try:
            return await asyncio.wait_for(
                cp.provider.is_available(), timeout=self._availability_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("availability_check_timeout", provider=cp.name)
            return False
        except Exception as e:
            logger.warning("availability_check_failed", provider=cp.name, error=str(e))
            return False

    async def _probe(
        self,
        cp: ConfiguredProvider,
        priority: int,
        trace: TraceContext,
        timeout: float,
    ) -> ProbeOutcome:
        start = time.monotonic()
        with trace.span(f"probe:{cp.name}", provider=cp.name) as span:
            try:
                result = await asyncio.wait_for(
                    cp.provider.resolve(timeout), timeout=timeout + _PROBE_GRACE_SECONDS
                )
            except asyncio.TimeoutError:
                result = LocationResult.failure(cp.provider.method, "timeout", ErrorKind.TIMEOUT)
            except Exception as e:
                logger.error("provider_raised", provider=cp.name, error=str(e))
                result = LocationResult.failure(
                    cp.provider.method, f"unexpected error: {e}", ErrorKind.TRANSPORT
                )
            if not result.response_time_ms:
                result = result.with_timing((time.monotonic() - start) * 1000)
            if result.success:
                result = result.with_weight(cp.descriptor.static_weight)
            else:
                logger.info(
                    "probe_failed",
                    provider=cp.name,
                    kind=result.error_kind.value if result.error_kind else None,
                    error=result.error,
                )
            if result.success:
                span.outcome = "ok"
            else:
                span.outcome = result.error_kind.value if result.error_kind else "failed"

        log_probe_metrics(trace.trace_id, cp.name, result)
        return ProbeOutcome(name=cp.name, priority=priority, result=result)

    async def _probe_all(
        self,
        available: list[tuple[int, ConfiguredProvider]],
        deadline: float,
        trace: TraceContext,
    ) -> list[ProbeOutcome]:
        if not available:
            return []

        tasks: dict[asyncio.Task, tuple[int, ConfiguredProvider]] = {}
        for priority, cp in available:
            timeout = max(0.0, min(cp.timeout, deadline - time.monotonic()))
            task = asyncio.create_task(self._probe(cp, priority, trace, timeout))
            tasks[task] = (priority, cp)

        outcomes: list[ProbeOutcome] = []
        pending = set(tasks)
        cutoff_priority: int | None = None

        while pending:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                outcomes.append(task.result())

            cutoff_priority = self._short_circuit_priority(outcomes, tasks, pending)
            if cutoff_priority is not None:
                break

        if pending:
            for task in pending:
                priority, cp = tasks[task]
                reason = "short_circuit" if cutoff_priority is not None else "cycle_deadline"
                logger.info("probe_cancelled", provider=cp.name, reason=reason)
                trace.mark(f"probe:{cp.name}", "cancelled", provider=cp.name, reason=reason)
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if cutoff_priority is not None:
            # Match what a sequential run stopping at the cutoff would have seen
            outcomes = [o for o in outcomes if o.priority <= cutoff_priority]

        return sorted(outcomes, key=lambda o: o.priority)

    def _short_circuit_priority(
        self,
        outcomes: list[ProbeOutcome],
        tasks: dict[asyncio.Task, tuple[int, ConfiguredProvider]],
        pending: set[asyncio.Task],
    ) -> int | None:
        """Priority of the earliest qualifying success once everything ahead of it has finished."""
        if self._min_short_circuit_weight is None:
            return None
        qualifying = sorted(
            o.priority
            for o in outcomes
            if o.result.success and o.result.weight >= self._min_short_circuit_weight
        )
        if not qualifying:
            return None
        first = qualifying[0]
        if any(tasks[t][0] < first for t in pending):
            return None
        return first
