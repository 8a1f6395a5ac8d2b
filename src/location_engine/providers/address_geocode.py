"""Address geocoding provider backed by the Google Geocoding API."""

from __future__ import annotations

import asyncio
import time

import httpx

from location_engine.config.constants import GOOGLE_GEOCODE_URL, PROVIDER_ADDRESS_GEOCODE
from location_engine.exceptions import (
    ProviderError,
    ProviderParseError,
    ProviderTimeout,
    ProviderTransportError,
    ProviderUnavailable,
)
from location_engine.models.domain import (
    ErrorKind,
    LocationMethod,
    LocationResult,
    Place,
    coordinates_valid,
)
from location_engine.observability.logger import get_logger

logger = get_logger("address_geocode")

# Rough radius for Google's location_type precision levels
_LOCATION_TYPE_ACCURACY_M = {
    "ROOFTOP": 10.0,
    "RANGE_INTERPOLATED": 50.0,
    "GEOMETRIC_CENTER": 250.0,
    "APPROXIMATE": 5000.0,
}


class AddressGeocodeProvider:
    method = LocationMethod.ADDRESS_GEOCODE
    requires_user_consent = False

    def __init__(
        self,
        address: str,
        api_key: str | None,
        name: str = PROVIDER_ADDRESS_GEOCODE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self._address = (address or "").strip()
        self._api_key = api_key or ""
        self._transport = transport

    async def is_available(self) -> bool:
        return bool(self._address) and bool(self._api_key)

    async def resolve(self, timeout: float) -> LocationResult:
        start = time.monotonic()
        try:
            result = await self._geocode(timeout)
        except ProviderError as e:
            logger.info("geocode_failed", kind=e.kind.value, error=str(e))
            return LocationResult.failure(
                self.method,
                str(e),
                e.kind,
                source="google",
                response_time_ms=(time.monotonic() - start) * 1000,
            )
        return result.with_timing((time.monotonic() - start) * 1000)

    async def _geocode(self, timeout: float) -> LocationResult:
        if not self._api_key:
            raise ProviderUnavailable("credential required")
        if not self._address:
            raise ProviderUnavailable("no address configured")

        params = {"address": self._address, "key": self._api_key}
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await asyncio.wait_for(
                    client.get(GOOGLE_GEOCODE_URL, params=params, timeout=timeout),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ProviderTimeout("timeout") from e
        except httpx.HTTPError as e:
            raise ProviderTransportError(f"network failure: {e}") from e

        if response.status_code != 200:
            raise ProviderTransportError(f"Google Geocoding HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderParseError("invalid JSON from Google Geocoding") from e

        status = data.get("status")
        if status == "REQUEST_DENIED":
            # A rejected key is a prerequisite problem, not a transient one
            raise ProviderUnavailable(
                f"credential rejected: {data.get('error_message') or status}"
            )
        if status != "OK" or not data.get("results"):
            raise ProviderParseError(f"Google Geocoding failed: {status}")

        best = data["results"][0]
        geometry = best.get("geometry", {})
        location = geometry.get("location", {})
        lat = location.get("lat")
        lng = location.get("lng")
        if not coordinates_valid(lat, lng):
            raise ProviderParseError(f"Google Geocoding returned invalid coordinates ({lat}, {lng})")

        return LocationResult.ok(
            self.method,
            lat,
            lng,
            accuracy_meters=_LOCATION_TYPE_ACCURACY_M.get(geometry.get("location_type"), 0.0),
            place=_place_from_components(best.get("address_components", [])),
            source="google",
        )


def _place_from_components(components: list[dict]) -> Place:
    found: dict[str, str] = {}
    for component in components:
        types = component.get("types", [])
        name = component.get("long_name")
        if "locality" in types or ("postal_town" in types and "city" not in found):
            found.setdefault("city", name)
        elif "administrative_area_level_1" in types:
            found["region"] = name
        elif "country" in types:
            found["country"] = name
    return Place.from_parts(found.get("city"), found.get("region"), found.get("country"))
