"""IP geolocation endpoint definitions and their per-service response parsers.

Every public IP lookup service answers with its own JSON shape. Each parser
here knows exactly one shape and turns it into a ``ParsedLocation`` or raises
``ProviderParseError``; the IP provider dispatches on endpoint name.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from location_engine.config.constants import IP_ENDPOINT_URLS
from location_engine.exceptions import ConfigurationError, ProviderParseError
from location_engine.models.domain import Place, coordinates_valid


@dataclass(frozen=True)
class ParsedLocation:
    latitude: float
    longitude: float
    place: Place
    organization: str = ""


@dataclass(frozen=True)
class IPEndpoint:
    name: str
    url: str
    parser: Callable[[dict], ParsedLocation]


def _coords(lat, lon, endpoint: str) -> tuple[float, float]:
    try:
        latitude = float(lat)
        longitude = float(lon)
    except (TypeError, ValueError) as e:
        raise ProviderParseError(f"{endpoint}: missing or non-numeric coordinates") from e
    if not coordinates_valid(latitude, longitude):
        raise ProviderParseError(f"{endpoint}: coordinates out of range ({latitude}, {longitude})")
    return latitude, longitude


def parse_ipapi_co(payload: dict) -> ParsedLocation:
    if payload.get("error"):
        raise ProviderParseError(f"ipapi.co: {payload.get('reason') or 'error response'}")
    lat, lon = _coords(payload.get("latitude"), payload.get("longitude"), "ipapi.co")
    return ParsedLocation(
        latitude=lat,
        longitude=lon,
        place=Place.from_parts(
            payload.get("city"),
            payload.get("region"),
            payload.get("country_name") or payload.get("country"),
        ),
        organization=str(payload.get("org") or ""),
    )


def parse_ipinfo_io(payload: dict) -> ParsedLocation:
    loc = payload.get("loc")
    if not isinstance(loc, str) or "," not in loc:
        raise ProviderParseError("ipinfo.io: response has no 'loc' field")
    lat_s, lon_s = loc.split(",", 1)
    lat, lon = _coords(lat_s.strip(), lon_s.strip(), "ipinfo.io")
    return ParsedLocation(
        latitude=lat,
        longitude=lon,
        place=Place.from_parts(payload.get("city"), payload.get("region"), payload.get("country")),
        organization=str(payload.get("org") or ""),
    )


def parse_ip_api_com(payload: dict) -> ParsedLocation:
    if payload.get("status") != "success":
        raise ProviderParseError(f"ip-api.com: {payload.get('message') or 'lookup failed'}")
    lat, lon = _coords(payload.get("lat"), payload.get("lon"), "ip-api.com")
    org_parts = [str(payload.get(k) or "") for k in ("isp", "org", "as")]
    organization = " / ".join(p for p in org_parts if p)
    if payload.get("proxy") or payload.get("hosting"):
        organization = f"{organization} [proxy/hosting]".strip()
    return ParsedLocation(
        latitude=lat,
        longitude=lon,
        place=Place.from_parts(payload.get("city"), payload.get("regionName"), payload.get("country")),
        organization=organization,
    )


def parse_ipwho_is(payload: dict) -> ParsedLocation:
    if payload.get("success") is False:
        raise ProviderParseError(f"ipwho.is: {payload.get('message') or 'lookup failed'}")
    lat, lon = _coords(payload.get("latitude"), payload.get("longitude"), "ipwho.is")
    connection = payload.get("connection") or {}
    organization = str(connection.get("org") or connection.get("isp") or "")
    return ParsedLocation(
        latitude=lat,
        longitude=lon,
        place=Place.from_parts(payload.get("city"), payload.get("region"), payload.get("country")),
        organization=organization,
    )


def parse_freeipapi_com(payload: dict) -> ParsedLocation:
    lat, lon = _coords(payload.get("latitude"), payload.get("longitude"), "freeipapi.com")
    return ParsedLocation(
        latitude=lat,
        longitude=lon,
        place=Place.from_parts(
            payload.get("cityName"), payload.get("regionName"), payload.get("countryName")
        ),
    )


_PARSERS: dict[str, Callable[[dict], ParsedLocation]] = {
    "ipapi.co": parse_ipapi_co,
    "ipinfo.io": parse_ipinfo_io,
    "ip-api.com": parse_ip_api_com,
    "ipwho.is": parse_ipwho_is,
    "freeipapi.com": parse_freeipapi_com,
}

ENDPOINTS: dict[str, IPEndpoint] = {
    name: IPEndpoint(name=name, url=IP_ENDPOINT_URLS[name], parser=parser)
    for name, parser in _PARSERS.items()
}


def get_endpoint(name: str) -> IPEndpoint:
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown IP endpoint '{name}'. Known endpoints: {', '.join(ENDPOINTS)}"
        ) from None
