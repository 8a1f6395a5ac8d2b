"""IP-based geolocation provider with ordered endpoint fallback."""

from __future__ import annotations

import asyncio
import time

import httpx

from location_engine.config.constants import DEFAULT_IP_ENDPOINTS, PROVIDER_IP
from location_engine.exceptions import (
    ProviderError,
    ProviderParseError,
    ProviderTimeout,
    ProviderTransportError,
)
from location_engine.models.domain import ErrorKind, LocationMethod, LocationResult
from location_engine.observability.logger import get_logger
from location_engine.providers.ip_endpoints import IPEndpoint, ParsedLocation, get_endpoint

logger = get_logger("ip_provider")

USER_AGENT = "location-reliability-engine/1.0"


class IPGeolocationProvider:
    """Queries public IP geolocation services in a fixed order until one answers.

    ``timeout`` passed to ``resolve`` bounds the whole provider, not each
    endpoint: later endpoints only get whatever budget is left.
    """

    method = LocationMethod.IP
    requires_user_consent = False

    def __init__(
        self,
        endpoints: list[str] | None = None,
        name: str = PROVIDER_IP,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        # Resolve names eagerly so unknown endpoints fail at config-load time
        self._endpoints: list[IPEndpoint] = [
            get_endpoint(e) for e in (endpoints or DEFAULT_IP_ENDPOINTS)
        ]
        self._transport = transport

    @property
    def endpoint_names(self) -> list[str]:
        return [e.name for e in self._endpoints]

    async def is_available(self) -> bool:
        return bool(self._endpoints)

    async def resolve(self, timeout: float) -> LocationResult:
        start = time.monotonic()
        deadline = start + timeout
        failures: list[tuple[str, ProviderError]] = []

        async with self._client() as client:
            for endpoint in self._endpoints:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("ip_provider_budget_exhausted", tried=len(failures))
                    return LocationResult.failure(
                        self.method,
                        "timeout",
                        ErrorKind.TIMEOUT,
                        response_time_ms=(time.monotonic() - start) * 1000,
                    )
                try:
                    parsed = await self._fetch(client, endpoint, remaining)
                except ProviderError as e:
                    logger.info("ip_endpoint_failed", endpoint=endpoint.name, error=str(e))
                    failures.append((endpoint.name, e))
                    continue

                return self._to_result(endpoint, parsed, (time.monotonic() - start) * 1000)

        elapsed_ms = (time.monotonic() - start) * 1000
        if failures and time.monotonic() >= deadline and all(
            e.kind == ErrorKind.TIMEOUT for _, e in failures
        ):
            return LocationResult.failure(
                self.method, "timeout", ErrorKind.TIMEOUT, response_time_ms=elapsed_ms
            )

        kinds = {e.kind for _, e in failures}
        kind = kinds.pop() if len(kinds) == 1 else ErrorKind.TRANSPORT
        combined = " | ".join(f"{name}: {err}" for name, err in failures)
        return LocationResult.failure(
            self.method,
            f"All IP endpoints failed: {combined}",
            kind,
            response_time_ms=elapsed_ms,
        )

    async def lookup(self, endpoint_name: str, timeout: float) -> LocationResult:
        """Query exactly one endpoint. Used by reliability assessment and VPN checks."""
        endpoint = get_endpoint(endpoint_name)
        start = time.monotonic()
        try:
            async with self._client() as client:
                parsed = await self._fetch(client, endpoint, timeout)
        except ProviderError as e:
            return LocationResult.failure(
                self.method,
                str(e),
                e.kind,
                source=endpoint.name,
                response_time_ms=(time.monotonic() - start) * 1000,
            )
        return self._to_result(endpoint, parsed, (time.monotonic() - start) * 1000)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            follow_redirects=True,
        )

    async def _fetch(
        self, client: httpx.AsyncClient, endpoint: IPEndpoint, timeout: float
    ) -> ParsedLocation:
        try:
            response = await asyncio.wait_for(
                client.get(endpoint.url, timeout=timeout), timeout=timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ProviderTimeout("timeout") from e
        except httpx.HTTPError as e:
            raise ProviderTransportError(f"transport error: {e}") from e

        if response.status_code != 200:
            raise ProviderTransportError(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderParseError("invalid JSON") from e
        if not isinstance(payload, dict):
            raise ProviderParseError("unexpected response shape")

        return endpoint.parser(payload)

    def _to_result(
        self, endpoint: IPEndpoint, parsed: ParsedLocation, elapsed_ms: float
    ) -> LocationResult:
        logger.debug(
            "ip_lookup_succeeded",
            endpoint=endpoint.name,
            city=parsed.place.city,
            duration_ms=round(elapsed_ms, 2),
        )
        return LocationResult.ok(
            self.method,
            parsed.latitude,
            parsed.longitude,
            place=parsed.place,
            source=endpoint.name,
            organization=parsed.organization,
            response_time_ms=elapsed_ms,
        )
