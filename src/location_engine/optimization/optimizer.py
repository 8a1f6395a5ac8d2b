"""Turn reliability measurements and network conditions into a ranked provider order."""

from __future__ import annotations

from collections.abc import Mapping

from location_engine.config.constants import IP_ENDPOINT_URLS, PROVIDER_IP, PROVIDER_ON_DEVICE
from location_engine.models.domain import (
    NetworkCondition,
    ProviderDescriptor,
    RankedConfig,
    ReliabilityAssessment,
)
from location_engine.observability.logger import get_logger

logger = get_logger("optimizer")

IP_BASED_PROVIDERS = frozenset({PROVIDER_IP})

# Never written to the persisted ranking; re-read from Settings at build time
SECRET_SETTING_KEYS = ("api_key",)


def _owner(label: str) -> str:
    """Assessments may be labeled by IP endpoint; those belong to the ip provider."""
    return PROVIDER_IP if label in IP_ENDPOINT_URLS else label


class ConfigurationOptimizer:
    """Pure ranking over already-collected inputs. Does no I/O of its own."""

    def optimize(
        self,
        descriptors: list[ProviderDescriptor],
        assessments: list[ReliabilityAssessment],
        network: NetworkCondition,
        preferences: list[str] | None = None,
        consent_granted: bool = False,
        max_response_time_ms: float | None = None,
        available: Mapping[str, bool] | None = None,
    ) -> RankedConfig:
        available = available or {}
        dropped: dict[str, str] = {}
        by_provider: dict[str, list[ReliabilityAssessment]] = {}
        for a in assessments:
            by_provider.setdefault(_owner(a.endpoint), []).append(a)

        # 1. consent
        remaining: list[ProviderDescriptor] = []
        for d in descriptors:
            if d.requires_user_consent and not consent_granted:
                dropped[d.name] = "consent_not_granted"
            else:
                remaining.append(d)

        # 2. response time ceiling
        settings: dict[str, dict] = {}
        kept: list[ProviderDescriptor] = []
        for d in remaining:
            cfg = {k: v for k, v in d.config.items() if k not in SECRET_SETTING_KEYS}
            cfg["weight"] = d.static_weight
            measured = by_provider.get(d.name, [])
            fast = [a for a in measured if not _too_slow(a, max_response_time_ms)]
            if measured and not fast:
                dropped[d.name] = "response_time_exceeded"
                continue
            if d.name == PROVIDER_IP and measured:
                slow = {a.endpoint for a in measured} - {a.endpoint for a in fast}
                cfg["endpoints"] = _ranked_endpoints(cfg.get("endpoints", []), fast, slow)
            settings[d.name] = cfg
            kept.append(d)

        # 3. rank; sorted() is stable so ties keep the incoming order
        scores = {d.name: _score(d.name, by_provider, available) for d in kept}
        order = sorted((d.name for d in kept), key=lambda n: scores[n], reverse=True)

        # 4. user preferences
        if preferences:
            preferred = [p for p in preferences if p in order]
            order = preferred + [n for n in order if n not in preferred]

        # 5. mobile network favors the device's own fix
        if (
            network.is_mobile
            and PROVIDER_ON_DEVICE in order
            and consent_granted
            and available.get(PROVIDER_ON_DEVICE, False)
        ):
            order = [PROVIDER_ON_DEVICE] + [n for n in order if n != PROVIDER_ON_DEVICE]

        # 6. behind a VPN, IP answers become a last resort
        if network.is_vpn:
            order = [n for n in order if n not in IP_BASED_PROVIDERS] + [
                n for n in order if n in IP_BASED_PROVIDERS
            ]

        ranked = RankedConfig(
            provider_order=order,
            provider_settings={n: settings[n] for n in order},
            hybrid_enabled=len(order) >= 2,
            scores=scores,
            dropped=dropped,
            network=network,
            consent_granted=consent_granted,
        )
        logger.info(
            "configuration_optimized",
            order=order,
            dropped=dropped,
            hybrid_enabled=ranked.hybrid_enabled,
            is_vpn=network.is_vpn,
            is_mobile=network.is_mobile,
        )
        return ranked


def _too_slow(assessment: ReliabilityAssessment, ceiling_ms: float | None) -> bool:
    if ceiling_ms is None:
        return False
    avg = assessment.avg_response_time_ms
    return avg is not None and avg > ceiling_ms


def _score(
    name: str,
    by_provider: dict[str, list[ReliabilityAssessment]],
    available: Mapping[str, bool],
) -> float:
    measured = by_provider.get(name)
    if measured:
        return max(a.reliability_score for a in measured)
    return 100.0 if available.get(name, False) else 0.0


def _ranked_endpoints(
    configured: list[str], fast: list[ReliabilityAssessment], slow: set[str]
) -> list[str]:
    """Configured IP endpoints ordered by score; slow ones removed, unmeasured ones kept last."""
    scored = {a.endpoint: a.reliability_score for a in fast}
    measured_names = {a.endpoint for a in fast}
    # An assessment labeled "ip" scores the provider as a whole; keep the configured order
    if measured_names <= {PROVIDER_IP}:
        return list(configured)
    ranked = sorted((e for e in configured if e in scored), key=lambda e: scored[e], reverse=True)
    return ranked + [e for e in configured if e not in scored and e not in slow]
