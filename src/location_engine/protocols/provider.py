"""Protocols for location providers and platform location services."""

from __future__ import annotations

from typing import Protocol

from location_engine.models.domain import LocationMethod, LocationResult


class LocationProvider(Protocol):
    name: str
    method: LocationMethod
    requires_user_consent: bool

    async def is_available(self) -> bool: ...

    async def resolve(self, timeout: float) -> LocationResult: ...


class PlatformLocationService(Protocol):
    """A device location backend (CoreLocation, GeoClue, ...)."""

    async def authorization_status(self) -> str: ...

    async def locate(self, accuracy: str, timeout: float) -> dict: ...
