"""Pydantic models for persisted configuration and API serialization."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from location_engine.config.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CYCLE_DEADLINE,
    DEFAULT_PROVIDER_PRIORITY,
    KNOWN_PROVIDERS,
    PROVIDER_FIXED,
)
from location_engine.models.domain import coordinates_valid


class LocationConfig(BaseModel):
    """Persisted provider configuration. Every field is optional."""

    provider_priority: list[str] = Field(default_factory=lambda: list(DEFAULT_PROVIDER_PRIORITY))
    provider_settings: dict[str, dict[str, Any]] = Field(default_factory=dict)
    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0)
    hybrid_enabled: bool = True
    consent_granted: bool = False
    min_short_circuit_weight: float | None = Field(default=None, gt=0.0, le=1.0)
    cycle_deadline_seconds: float = Field(default=DEFAULT_CYCLE_DEADLINE, gt=0.0)
    preferred_providers: list[str] = Field(default_factory=list)

    @field_validator("provider_priority")
    @classmethod
    def _known_providers(cls, value: list[str]) -> list[str]:
        unknown = [p for p in value if p not in KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(f"unknown providers: {unknown}")
        if len(set(value)) != len(value):
            raise ValueError("provider_priority contains duplicates")
        return value

    @model_validator(mode="after")
    def _fixed_coordinates_present(self) -> LocationConfig:
        if PROVIDER_FIXED not in self.provider_priority:
            return self
        fixed = self.provider_settings.get(PROVIDER_FIXED, {})
        lat = fixed.get("latitude")
        lon = fixed.get("longitude")
        if lat is None or lon is None:
            # The implicit default only includes fixed once coordinates exist
            if "provider_priority" not in self.model_fields_set:
                self.provider_priority = [p for p in self.provider_priority if p != PROVIDER_FIXED]
                return self
            raise ValueError("fixed provider requires 'latitude' and 'longitude' settings")
        if not coordinates_valid(lat, lon):
            raise ValueError(
                f"fixed coordinates out of range: ({lat}, {lon}); "
                "latitude must be within [-90, 90] and longitude within [-180, 180]"
            )
        return self


class LocationResponse(BaseModel):
    success: bool
    latitude: float | None = None
    longitude: float | None = None
    accuracy_meters: float = 0.0
    city: str
    region: str
    country: str
    method: str
    source: str
    error: str | None = None
    error_kind: str | None = None
    observed_at: str
    weight: float
    response_time_ms: float
    consulted: list[str]


class AssessmentResponse(BaseModel):
    endpoint: str
    attempts: int
    successes: int
    avg_response_time_ms: float | None
    reliability_score: float = Field(ge=0.0, le=100.0)
    errors: list[str]


class AssessRequest(BaseModel):
    iterations: int = Field(default=3, ge=1, le=20)


class OptimizeRequest(BaseModel):
    preferences: list[str] = Field(default_factory=list)
    consent_granted: bool = False
    max_response_time_ms: float = Field(default=5000.0, gt=0.0)


class RankedConfigResponse(BaseModel):
    provider_order: list[str]
    provider_settings: dict[str, dict[str, Any]]
    hybrid_enabled: bool
    scores: dict[str, float]
    dropped: dict[str, str]
    network: dict[str, Any]
    consent_granted: bool
    created_at: str


class NetworkResponse(BaseModel):
    is_mobile: bool
    is_vpn: bool
    is_reliable: bool
    connection_type: str
    evidence: list[str]


class HealthResponse(BaseModel):
    status: str
    providers: list[str]
    hybrid_enabled: bool
    cache_ttl_seconds: int
