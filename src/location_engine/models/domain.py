"""Core domain objects used throughout the system."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from location_engine.config.constants import RESPONSE_TIME_HISTORY, UNKNOWN_PLACE

UNKNOWN = UNKNOWN_PLACE


class LocationMethod(str, Enum):
    IP = "IP"
    ON_DEVICE = "OnDeviceLocation"
    FIXED = "FixedCoordinate"
    ADDRESS_GEOCODE = "AddressGeocode"
    HYBRID = "Hybrid"


class ErrorKind(str, Enum):
    UNAVAILABLE = "unavailable"
    CONSENT_DENIED = "consent_denied"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    PARSE = "parse"
    INVALID_COORDINATES = "invalid_coordinates"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"


def coordinates_valid(latitude: float | None, longitude: float | None) -> bool:
    if latitude is None or longitude is None:
        return False
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return False
    # NaN fails both comparisons
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


@dataclass(frozen=True)
class Place:
    city: str = UNKNOWN
    region: str = UNKNOWN
    country: str = UNKNOWN

    @classmethod
    def from_parts(cls, city: Any = None, region: Any = None, country: Any = None) -> Place:
        return cls(
            city=_clean(city),
            region=_clean(region),
            country=_clean(country),
        )


def _clean(value: Any) -> str:
    text = str(value or "").strip()
    return text or UNKNOWN


@dataclass(frozen=True)
class LocationResult:
    """Outcome of one provider (or one hybrid cycle).

    Build instances through ``ok`` and ``failure``; a successful result always
    carries range-valid coordinates and a failed one always carries an error.
    """

    success: bool
    method: LocationMethod
    latitude: float | None = None
    longitude: float | None = None
    accuracy_meters: float = 0.0
    place: Place = field(default_factory=Place)
    source: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    weight: float = 0.0
    response_time_ms: float = 0.0
    organization: str = ""
    consulted: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.success:
            if not coordinates_valid(self.latitude, self.longitude):
                raise ValueError(
                    f"Successful result requires valid coordinates, got "
                    f"({self.latitude}, {self.longitude})"
                )
            if self.error is not None:
                raise ValueError("Successful result must not carry an error")
        elif not self.error:
            raise ValueError("Failed result requires an error reason")

    @classmethod
    def ok(
        cls,
        method: LocationMethod,
        latitude: float,
        longitude: float,
        *,
        accuracy_meters: float = 0.0,
        place: Place | None = None,
        source: str = "",
        organization: str = "",
        response_time_ms: float = 0.0,
    ) -> LocationResult:
        if not coordinates_valid(latitude, longitude):
            raise ValueError(f"Coordinates out of range: ({latitude}, {longitude})")
        return cls(
            success=True,
            method=method,
            latitude=float(latitude),
            longitude=float(longitude),
            accuracy_meters=max(0.0, float(accuracy_meters or 0.0)),
            place=place or Place(),
            source=source,
            organization=organization,
            response_time_ms=response_time_ms,
        )

    @classmethod
    def failure(
        cls,
        method: LocationMethod,
        error: str,
        kind: ErrorKind,
        *,
        source: str = "",
        response_time_ms: float = 0.0,
    ) -> LocationResult:
        return cls(
            success=False,
            method=method,
            error=error,
            error_kind=kind,
            source=source,
            response_time_ms=response_time_ms,
        )

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if not self.success:
            return None
        return (self.latitude, self.longitude)

    def with_weight(self, weight: float) -> LocationResult:
        return replace(self, weight=weight)

    def with_timing(self, response_time_ms: float) -> LocationResult:
        return replace(self, response_time_ms=response_time_ms)

    def as_hybrid(self, consulted: tuple[str, ...]) -> LocationResult:
        """Re-tag a winning result; coordinates and accuracy are left untouched."""
        return replace(self, method=LocationMethod.HYBRID, consulted=tuple(consulted))

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy_meters": self.accuracy_meters,
            "city": self.place.city,
            "region": self.place.region,
            "country": self.place.country,
            "method": self.method.value,
            "source": self.source,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "observed_at": self.observed_at.isoformat(),
            "weight": self.weight,
            "response_time_ms": round(self.response_time_ms, 2),
            "consulted": list(self.consulted),
        }


@dataclass(frozen=True)
class ProviderDescriptor:
    name: str
    requires_user_consent: bool
    static_weight: float
    config: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 < self.static_weight <= 1.0:
            raise ValueError(f"static_weight must be in (0, 1], got {self.static_weight}")
        # Freeze the settings map for the lifetime of the descriptor
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))


@dataclass
class ReliabilityAssessment:
    endpoint: str
    attempts: int = 0
    successes: int = 0
    response_times_ms: deque = field(default_factory=lambda: deque(maxlen=RESPONSE_TIME_HISTORY))
    coordinates: list[tuple[float, float]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    reliability_score: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.successes / self.attempts

    @property
    def avg_response_time_ms(self) -> float | None:
        if not self.response_times_ms:
            return None
        return sum(self.response_times_ms) / len(self.response_times_ms)


@dataclass(frozen=True)
class CacheEntry:
    result: LocationResult
    cached_at: float


@dataclass(frozen=True)
class NetworkCondition:
    is_mobile: bool = False
    is_vpn: bool = False
    is_reliable: bool = True
    connection_type: str = "unknown"
    evidence: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "is_mobile": self.is_mobile,
            "is_vpn": self.is_vpn,
            "is_reliable": self.is_reliable,
            "connection_type": self.connection_type,
            "evidence": list(self.evidence),
        }


@dataclass(frozen=True)
class RankedConfig:
    provider_order: list[str]
    provider_settings: dict[str, dict]
    hybrid_enabled: bool
    scores: dict[str, float] = field(default_factory=dict)
    dropped: dict[str, str] = field(default_factory=dict)
    network: NetworkCondition = field(default_factory=NetworkCondition)
    consent_granted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "provider_order": list(self.provider_order),
            "provider_settings": {k: dict(v) for k, v in self.provider_settings.items()},
            "hybrid_enabled": self.hybrid_enabled,
            "scores": dict(self.scores),
            "dropped": dict(self.dropped),
            "network": self.network.to_dict(),
            "consent_granted": self.consent_granted,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RankedConfig:
        network = data.get("network") or {}
        created_at = data.get("created_at")
        return cls(
            provider_order=list(data.get("provider_order", [])),
            provider_settings={k: dict(v) for k, v in (data.get("provider_settings") or {}).items()},
            hybrid_enabled=bool(data.get("hybrid_enabled", True)),
            scores=dict(data.get("scores") or {}),
            dropped=dict(data.get("dropped") or {}),
            network=NetworkCondition(
                is_mobile=bool(network.get("is_mobile", False)),
                is_vpn=bool(network.get("is_vpn", False)),
                is_reliable=bool(network.get("is_reliable", True)),
                connection_type=network.get("connection_type", "unknown"),
                evidence=tuple(network.get("evidence", ())),
            ),
            consent_granted=bool(data.get("consent_granted", False)),
            created_at=(
                datetime.fromisoformat(created_at)
                if created_at
                else datetime.now(timezone.utc)
            ),
        )


@dataclass
class ResolutionTrace:
    trace_id: str
    timestamp: datetime
    latency_ms: float
    success: bool
    method: str
    source: str
    consulted: list[str]
    error: str | None
    spans: list[dict]
