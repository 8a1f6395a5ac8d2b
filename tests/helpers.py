"""Fakes, canned payloads and builders shared across tests."""

from __future__ import annotations

import asyncio

import httpx

from location_engine.exceptions import ProviderError
from location_engine.models.domain import (
    LocationMethod,
    LocationResult,
    Place,
    ProviderDescriptor,
)
from location_engine.providers.registry import ConfiguredProvider

NYC = (40.7128, -74.0060)
PHILADELPHIA = (39.9526, -75.1652)

IPAPI_CO_NYC = {
    "ip": "203.0.113.7",
    "city": "New York",
    "region": "New York",
    "country_name": "United States",
    "latitude": 40.7128,
    "longitude": -74.006,
    "org": "AS7922 Comcast Cable Communications, LLC",
}

IPINFO_NYC = {
    "ip": "203.0.113.7",
    "city": "New York",
    "region": "New York",
    "country": "US",
    "loc": "40.7143,-74.0060",
    "org": "AS7922 Comcast Cable Communications, LLC",
}

IP_API_NYC = {
    "status": "success",
    "lat": 40.7128,
    "lon": -74.006,
    "city": "New York",
    "regionName": "New York",
    "country": "United States",
    "isp": "Comcast Cable",
    "org": "Comcast",
    "as": "AS7922",
    "proxy": False,
    "hosting": False,
}

PAYLOADS_BY_HOST = {
    "ipapi.co": IPAPI_CO_NYC,
    "ipinfo.io": IPINFO_NYC,
    "ip-api.com": IP_API_NYC,
}

class FakeProvider:
    """Fake provider that returns a canned result and tracks call counts."""

    def __init__(
        self,
        name: str,
        result: LocationResult | None = None,
        available: bool = True,
        delay: float = 0.0,
        error: Exception | None = None,
        method: LocationMethod = LocationMethod.IP,
    ) -> None:
        self.name = name
        self.method = method
        self.requires_user_consent = False
        self._result = result
        self._available = available
        self._delay = delay
        self._error = error
        self.availability_calls = 0
        self.resolve_calls = 0

    async def is_available(self) -> bool:
        self.availability_calls += 1
        return self._available

    async def resolve(self, timeout: float) -> LocationResult:
        self.resolve_calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._result

class FakeLocationService:
    """Scripted platform location service.

    ``responses`` maps accuracy level to either a payload dict or an
    exception to raise for that level.
    """

    def __init__(
        self,
        responses: dict | None = None,
        status: str = "authorized",
        delay: float = 0.0,
    ) -> None:
        self._responses = responses or {}
        self._status = status
        self._delay = delay
        self.locate_calls: list[str] = []

    async def authorization_status(self) -> str:
        return self._status

    async def locate(self, accuracy: str, timeout: float) -> dict:
        self.locate_calls.append(accuracy)
        if self._delay:
            await asyncio.sleep(self._delay)
        response = self._responses.get(accuracy)
        if isinstance(response, ProviderError):
            raise response
        if response is None:
            raise ProviderError(f"no scripted response for {accuracy}")
        return response

def ok(lat: float, lon: float, method: LocationMethod = LocationMethod.IP, source: str = "") -> LocationResult:
    return LocationResult.ok(method, lat, lon, place=Place.from_parts("Somewhere"), source=source)

def configured(provider, weight: float, timeout: float = 1.0) -> ConfiguredProvider:
    return ConfiguredProvider(
        descriptor=ProviderDescriptor(
            name=provider.name,
            requires_user_consent=provider.requires_user_consent,
            static_weight=weight,
        ),
        provider=provider,
        timeout=timeout,
    )

def ip_transport(payloads: dict | None = None, counter: dict | None = None, delay: float = 0.0):
    """MockTransport answering IP lookups by host; unknown hosts get a 500."""
    payloads = PAYLOADS_BY_HOST if payloads is None else payloads

    async def handler(request: httpx.Request) -> httpx.Response:
        if counter is not None:
            counter[request.url.host] = counter.get(request.url.host, 0) + 1
        if delay:
            await asyncio.sleep(delay)
        payload = payloads.get(request.url.host)
        if payload is None:
            return httpx.Response(500, text="upstream down")
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)

