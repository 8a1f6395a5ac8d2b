"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from location_engine.config.constants import (
    DEFAULT_AVAILABILITY_TIMEOUT,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CYCLE_DEADLINE,
    DEFAULT_GEOCODE_TIMEOUT,
    DEFAULT_IP_ENDPOINTS,
    DEFAULT_IP_TIMEOUT,
    DEFAULT_ON_DEVICE_TIMEOUT,
)


class Settings(BaseSettings):
    # API Keys
    google_api_key: str = ""

    # Persisted provider configuration (JSON, owned by the config loader)
    config_path: str = "data/location_config.json"

    # IP geolocation
    ip_endpoints: list[str] = list(DEFAULT_IP_ENDPOINTS)
    ip_timeout_seconds: float = DEFAULT_IP_TIMEOUT

    # On-device location
    corelocation_command: str = "CoreLocationCLI"
    on_device_timeout_seconds: float = DEFAULT_ON_DEVICE_TIMEOUT

    # Address geocoding
    geocode_timeout_seconds: float = DEFAULT_GEOCODE_TIMEOUT

    # Resolution cycle
    availability_timeout_seconds: float = DEFAULT_AVAILABILITY_TIMEOUT
    cycle_deadline_seconds: float = DEFAULT_CYCLE_DEADLINE
    default_cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS

    # Reliability assessment
    assessment_iterations: int = 3
    max_response_time_ms: float = 5000.0

    # Network detection: extra keywords appended to the built-in lists
    extra_vpn_keywords: list[str] = []
    extra_hosting_keywords: list[str] = []

    # Storage paths
    sqlite_db_path: str = "data/location_engine.db"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Server
    host: str = "127.0.0.1"
    port: int = 8765

    model_config = {"env_file": ".env", "env_prefix": "LOCATION_"}
