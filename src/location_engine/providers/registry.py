"""Build provider descriptors and provider instances from persisted configuration."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from location_engine.config.constants import (
    DEFAULT_STATIC_WEIGHTS,
    PROVIDER_ADDRESS_GEOCODE,
    PROVIDER_FIXED,
    PROVIDER_IP,
    PROVIDER_ON_DEVICE,
)
from location_engine.config.settings import Settings
from location_engine.exceptions import ConfigurationError
from location_engine.models.domain import Place, ProviderDescriptor, coordinates_valid
from location_engine.models.schemas import LocationConfig
from location_engine.observability.logger import get_logger
from location_engine.protocols.provider import LocationProvider, PlatformLocationService
from location_engine.providers.address_geocode import AddressGeocodeProvider
from location_engine.providers.fixed_coordinate import FixedCoordinateProvider
from location_engine.providers.ip_geolocation import IPGeolocationProvider
from location_engine.providers.on_device import CommandLocationService, OnDeviceLocationProvider

logger = get_logger("provider_registry")


@dataclass(frozen=True)
class ConfiguredProvider:
    descriptor: ProviderDescriptor
    provider: LocationProvider
    timeout: float

    @property
    def name(self) -> str:
        return self.descriptor.name


class ProviderRegistry:
    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        location_service: PlatformLocationService | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._location_service = location_service
        self._default_timeouts = {
            PROVIDER_IP: settings.ip_timeout_seconds,
            PROVIDER_ON_DEVICE: settings.on_device_timeout_seconds,
            PROVIDER_FIXED: 1.0,
            PROVIDER_ADDRESS_GEOCODE: settings.geocode_timeout_seconds,
        }

    def candidate_names(self, config: LocationConfig) -> list[str]:
        """Every provider that could run with this configuration, in priority-first order."""
        names = list(config.provider_priority)
        extra_settings = config.provider_settings
        if PROVIDER_IP not in names:
            names.append(PROVIDER_IP)
        if PROVIDER_ON_DEVICE not in names:
            names.append(PROVIDER_ON_DEVICE)
        fixed = extra_settings.get(PROVIDER_FIXED, {})
        if PROVIDER_FIXED not in names and "latitude" in fixed and "longitude" in fixed:
            names.append(PROVIDER_FIXED)
        geocode = extra_settings.get(PROVIDER_ADDRESS_GEOCODE, {})
        if PROVIDER_ADDRESS_GEOCODE not in names and geocode.get("address"):
            names.append(PROVIDER_ADDRESS_GEOCODE)
        return names

    def descriptor(self, name: str, config: LocationConfig) -> ProviderDescriptor:
        raw = dict(config.provider_settings.get(name, {}))
        weight = float(raw.pop("weight", DEFAULT_STATIC_WEIGHTS.get(name, 0.5)))
        raw.setdefault("timeout", self._default_timeouts.get(name, self._settings.ip_timeout_seconds))

        if name == PROVIDER_FIXED:
            lat = raw.get("latitude")
            lon = raw.get("longitude")
            if lat is None or lon is None:
                raise ConfigurationError("fixed provider requires latitude and longitude")
            if not coordinates_valid(lat, lon):
                raise ConfigurationError(f"fixed coordinates out of range: ({lat}, {lon})")
        elif name == PROVIDER_IP:
            raw.setdefault("endpoints", list(self._settings.ip_endpoints))
        elif name == PROVIDER_ADDRESS_GEOCODE:
            raw.setdefault("api_key", self._settings.google_api_key)
        elif name == PROVIDER_ON_DEVICE:
            raw.setdefault("desired_accuracy", "best")

        try:
            return ProviderDescriptor(
                name=name,
                requires_user_consent=(name == PROVIDER_ON_DEVICE),
                static_weight=weight,
                config=raw,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid settings for provider '{name}': {e}") from e

    def build(self, descriptor: ProviderDescriptor, consent_granted: bool) -> LocationProvider:
        cfg = descriptor.config
        if descriptor.name == PROVIDER_IP:
            return IPGeolocationProvider(
                endpoints=list(cfg["endpoints"]), transport=self._transport
            )
        if descriptor.name == PROVIDER_FIXED:
            return FixedCoordinateProvider(
                latitude=cfg.get("latitude"),
                longitude=cfg.get("longitude"),
                place=Place.from_parts(cfg.get("city"), cfg.get("region"), cfg.get("country")),
            )
        if descriptor.name == PROVIDER_ADDRESS_GEOCODE:
            return AddressGeocodeProvider(
                address=cfg.get("address", ""),
                api_key=cfg.get("api_key"),
                transport=self._transport,
            )
        if descriptor.name == PROVIDER_ON_DEVICE:
            service = self._location_service or CommandLocationService(
                cfg.get("command") or [self._settings.corelocation_command, "--json"]
            )
            return OnDeviceLocationProvider(
                service=service,
                consent_granted=consent_granted,
                desired_accuracy=cfg.get("desired_accuracy", "best"),
                availability_timeout=self._settings.availability_timeout_seconds,
            )
        raise ConfigurationError(f"Unknown provider '{descriptor.name}'")

    def build_all(
        self, config: LocationConfig, order: list[str] | None = None
    ) -> tuple[ConfiguredProvider, ...]:
        """Validate and construct providers in order. Raises before any network activity."""
        names = order if order is not None else config.provider_priority
        configured = []
        for name in names:
            descriptor = self.descriptor(name, config)
            provider = self.build(descriptor, config.consent_granted)
            configured.append(
                ConfiguredProvider(
                    descriptor=descriptor,
                    provider=provider,
                    timeout=float(descriptor.config["timeout"]),
                )
            )
        logger.info("providers_built", order=[c.name for c in configured])
        return tuple(configured)
