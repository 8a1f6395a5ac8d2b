"""Location engine facade: the single entry point callers use once per polling cycle."""

from __future__ import annotations

import asyncio
from pathlib import Path

import aiosqlite
import httpx
from pydantic import ValidationError

from location_engine.cache.result_cache import ResultCache
from location_engine.config.constants import HOSTING_KEYWORDS, PROVIDER_IP, VPN_KEYWORDS
from location_engine.config.loader import load_location_config
from location_engine.config.settings import Settings
from location_engine.exceptions import ConfigurationError
from location_engine.models.domain import (
    LocationResult,
    NetworkCondition,
    RankedConfig,
    ReliabilityAssessment,
)
from location_engine.models.schemas import LocationConfig
from location_engine.network.detector import NetworkConditionDetector
from location_engine.observability.logger import get_logger
from location_engine.observability.tracing import TraceContext
from location_engine.optimization.optimizer import ConfigurationOptimizer
from location_engine.protocols.provider import PlatformLocationService
from location_engine.providers.ip_geolocation import IPGeolocationProvider
from location_engine.providers.registry import ConfiguredProvider, ProviderRegistry
from location_engine.reliability.assessor import ReliabilityAssessor
from location_engine.selection.hybrid_selector import HybridSelector
from location_engine.storage.sqlite_config_store import SQLiteConfigStore
from location_engine.storage.sqlite_trace_store import SQLiteTraceStore

logger = get_logger("location_pipeline")


class LocationEngine:
    """Resolve, assess, optimize and cache behind one object.

    The active provider tuple, selector and config are swapped together by
    ``apply_ranked_config``; a cycle already running keeps the snapshot it
    started with.
    """

    def __init__(
        self,
        settings: Settings,
        config: LocationConfig,
        registry: ProviderRegistry,
        cache: ResultCache | None = None,
        detector: NetworkConditionDetector | None = None,
        optimizer: ConfigurationOptimizer | None = None,
        config_store: SQLiteConfigStore | None = None,
        trace_store: SQLiteTraceStore | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._detector = detector or NetworkConditionDetector()
        self._optimizer = optimizer or ConfigurationOptimizer()
        self._config_store = config_store
        self._trace_store = trace_store

        # Build before anything touches the network so bad config fails here
        self._providers = registry.build_all(config)
        self._config = config
        self._selector = self._make_selector(config)
        self._cache = cache or ResultCache(ttl_seconds=config.cache_ttl_seconds)

        self._inflight: asyncio.Task | None = None
        self._inflight_lock = asyncio.Lock()

    @property
    def config(self) -> LocationConfig:
        return self._config

    @property
    def providers(self) -> tuple[ConfiguredProvider, ...]:
        return self._providers

    @property
    def cache(self) -> ResultCache:
        return self._cache

    async def resolve_location(
        self, use_cache: bool = True, force_refresh: bool = False
    ) -> LocationResult:
        if use_cache and not force_refresh:
            cached = await self._cache.get()
            if cached is not None:
                logger.info("cache_hit", source=cached.source, method=cached.method.value)
                return cached

        async with self._inflight_lock:
            task = self._inflight
            if task is None or task.done():
                task = asyncio.create_task(self._run_cycle())
                self._inflight = task
            else:
                logger.info("joined_inflight_cycle", force_refresh=force_refresh)

        # A caller giving up must not cancel the cycle other callers are waiting on
        return await asyncio.shield(task)

    async def _run_cycle(self) -> LocationResult:
        providers = self._providers
        selector = self._selector
        hybrid = self._config.hybrid_enabled

        trace = TraceContext()
        if hybrid:
            result = await selector.resolve(providers, trace)
        else:
            result = await selector.resolve_first(providers, trace)

        # Failures are never cached; the next call retries
        if result.success:
            await self._cache.put(result)

        if self._trace_store is not None:
            try:
                await self._trace_store.save_trace(trace.to_trace(result))
            except aiosqlite.Error as e:
                logger.warning("trace_save_failed", trace_id=trace.trace_id, error=str(e))
        return result

    async def assess_provider_reliability(
        self, iterations: int | None = None
    ) -> list[ReliabilityAssessment]:
        """Score every IP endpoint plus each other active provider. Not for the hot path."""
        iterations = iterations or self._settings.assessment_iterations
        ip_provider = self._ip_provider(self._providers)
        assessor = ReliabilityAssessor(ip_provider, timeout=self._settings.ip_timeout_seconds)

        others = tuple(cp for cp in self._providers if cp.name != PROVIDER_IP)
        endpoint_scores, provider_scores = await asyncio.gather(
            assessor.assess_ip_endpoints(iterations),
            assessor.assess_providers(others, iterations),
        )
        assessments = sorted(
            endpoint_scores + provider_scores, key=lambda a: a.reliability_score, reverse=True
        )
        logger.info(
            "reliability_assessed",
            iterations=iterations,
            ranking=[(a.endpoint, a.reliability_score) for a in assessments],
        )
        return assessments

    async def optimize_configuration(
        self,
        preferences: list[str] | None = None,
        consent_granted: bool = False,
        max_response_time_ms: float | None = None,
    ) -> RankedConfig:
        if max_response_time_ms is None:
            max_response_time_ms = self._settings.max_response_time_ms

        candidate_config = self._config.model_copy(update={"consent_granted": consent_granted})
        names = self._registry.candidate_names(candidate_config)
        candidates = self._registry.build_all(candidate_config, order=names)

        ip_provider = self._ip_provider(candidates)
        assessor = ReliabilityAssessor(ip_provider, timeout=self._settings.ip_timeout_seconds)
        others = [cp for cp in candidates if cp.name != PROVIDER_IP]

        assessments, network, probes = await asyncio.gather(
            assessor.assess_ip_endpoints(self._settings.assessment_iterations),
            self._detector.detect(),
            asyncio.gather(*(self._probe_once(cp) for cp in others)),
        )
        available = {cp.name: ok for cp, ok in zip(others, probes)}

        ranked = self._optimizer.optimize(
            descriptors=[cp.descriptor for cp in candidates],
            assessments=assessments,
            network=network,
            preferences=preferences or self._config.preferred_providers,
            consent_granted=consent_granted,
            max_response_time_ms=max_response_time_ms,
            available=available,
        )

        # Only a ranking that applied cleanly may become the persisted one
        self.apply_ranked_config(ranked, consent_granted=consent_granted)
        if self._config_store is not None:
            await self._config_store.save(ranked)
        return ranked

    def apply_ranked_config(
        self, ranked: RankedConfig, consent_granted: bool | None = None
    ) -> None:
        """Validate and build the new provider set, then swap it in as one step."""
        current = self._config
        merged_settings = {k: dict(v) for k, v in current.provider_settings.items()}
        for name, values in ranked.provider_settings.items():
            merged_settings[name] = {**merged_settings.get(name, {}), **values}

        try:
            new_config = LocationConfig.model_validate(
                {
                    **current.model_dump(),
                    "provider_priority": list(ranked.provider_order),
                    "provider_settings": merged_settings,
                    "hybrid_enabled": ranked.hybrid_enabled,
                    "consent_granted": (
                        current.consent_granted if consent_granted is None else consent_granted
                    ),
                }
            )
        except ValidationError as e:
            raise ConfigurationError(f"Ranked configuration rejected: {e}") from e
        providers = self._registry.build_all(new_config)
        selector = self._make_selector(new_config)

        self._config, self._providers, self._selector = new_config, providers, selector
        logger.info(
            "ranked_config_applied",
            order=list(ranked.provider_order),
            hybrid_enabled=ranked.hybrid_enabled,
        )

    async def clear_cache(self) -> None:
        await self._cache.clear()

    async def detect_network_condition(self) -> NetworkCondition:
        return await self._detector.detect()

    async def _probe_once(self, cp: ConfiguredProvider) -> bool:
        """Single availability + resolve check used to rank unassessed providers."""
        ok = await self._selector.check_available(cp)
        if not ok:
            return False
        try:
            result = await asyncio.wait_for(
                cp.provider.resolve(cp.timeout), timeout=cp.timeout + 1.0
            )
        except asyncio.TimeoutError:
            return False
        except Exception as e:
            logger.warning("probe_once_failed", provider=cp.name, error=str(e))
            return False
        return result.success

    def _ip_provider(self, providers: tuple[ConfiguredProvider, ...]) -> IPGeolocationProvider:
        for cp in providers:
            if cp.name == PROVIDER_IP and isinstance(cp.provider, IPGeolocationProvider):
                return cp.provider
        return self._registry.build(
            self._registry.descriptor(PROVIDER_IP, self._config), self._config.consent_granted
        )

    def _make_selector(self, config: LocationConfig) -> HybridSelector:
        return HybridSelector(
            cycle_deadline=config.cycle_deadline_seconds,
            availability_timeout=self._settings.availability_timeout_seconds,
            min_short_circuit_weight=config.min_short_circuit_weight,
        )


def resolve_config_defaults(config: LocationConfig, settings: Settings) -> LocationConfig:
    """Fill fields the config file left unset from environment-driven Settings."""
    updates = {}
    if "cache_ttl_seconds" not in config.model_fields_set:
        updates["cache_ttl_seconds"] = settings.default_cache_ttl_seconds
    if "cycle_deadline_seconds" not in config.model_fields_set:
        updates["cycle_deadline_seconds"] = settings.cycle_deadline_seconds
    return config.model_copy(update=updates) if updates else config


async def create_engine(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
    location_service: PlatformLocationService | None = None,
) -> LocationEngine:
    """Load config, open stores, and re-apply the last persisted ranking if any."""
    config = resolve_config_defaults(load_location_config(settings.config_path), settings)

    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
    config_store = SQLiteConfigStore(settings.sqlite_db_path)
    await config_store.initialize()
    trace_store = SQLiteTraceStore(settings.sqlite_db_path)
    await trace_store.initialize()

    detector = NetworkConditionDetector(
        ip_provider=IPGeolocationProvider(
            endpoints=list(settings.ip_endpoints), transport=transport
        ),
        vpn_keywords=VPN_KEYWORDS + tuple(settings.extra_vpn_keywords),
        hosting_keywords=HOSTING_KEYWORDS + tuple(settings.extra_hosting_keywords),
        lookup_timeout=settings.ip_timeout_seconds,
    )

    engine = LocationEngine(
        settings=settings,
        config=config,
        registry=ProviderRegistry(settings, transport=transport, location_service=location_service),
        detector=detector,
        config_store=config_store,
        trace_store=trace_store,
    )

    ranked = await config_store.latest()
    if ranked is not None:
        engine.apply_ranked_config(ranked, consent_granted=ranked.consent_granted)
        logger.info(
            "persisted_ranking_loaded",
            created_at=ranked.created_at.isoformat(),
            consent_granted=ranked.consent_granted,
        )
    return engine
