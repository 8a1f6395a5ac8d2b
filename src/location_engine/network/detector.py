"""Heuristic network classification: mobile, VPN, or ordinary."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Callable

import psutil

from location_engine.config.constants import (
    DEFAULT_IP_TIMEOUT,
    ETHERNET_INTERFACE_PREFIXES,
    HOSTING_KEYWORDS,
    IGNORED_INTERFACE_PREFIXES,
    MOBILE_INTERFACE_PREFIXES,
    VPN_DISAGREEMENT_KM,
    VPN_INTERFACE_PREFIXES,
    VPN_KEYWORDS,
    WIFI_INTERFACE_PREFIXES,
)
from location_engine.geo.distance import haversine_km
from location_engine.models.domain import LocationResult, NetworkCondition
from location_engine.observability.logger import get_logger
from location_engine.providers.ip_geolocation import IPGeolocationProvider

logger = get_logger("network_detector")

_TYPE_ALIASES = {
    "wifi": "wifi",
    "wi-fi": "wifi",
    "wlan": "wifi",
    "airport": "wifi",
    "ethernet": "ethernet",
    "wired": "ethernet",
    "mobile": "mobile",
    "cellular": "mobile",
    "wwan": "mobile",
    "vpn": "vpn",
    "tunnel": "vpn",
}


def active_interface_names() -> list[str]:
    """Interfaces that are up and hold an IPv4 address, via psutil.

    macOS keeps several idle ``utun`` tunnels up with only link-local IPv6
    addresses; requiring IPv4 keeps those from reading as a VPN.
    """
    try:
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()
    except (OSError, RuntimeError) as e:
        logger.warning("interface_listing_failed", error=str(e))
        return []
    return [
        name
        for name, st in stats.items()
        if st.isup and any(a.family == socket.AF_INET for a in addrs.get(name, []))
    ]


def classify_interface(name: str) -> str | None:
    lowered = name.lower()
    if lowered.startswith(VPN_INTERFACE_PREFIXES):
        return "vpn"
    if lowered.startswith(MOBILE_INTERFACE_PREFIXES):
        return "mobile"
    if lowered.startswith(WIFI_INTERFACE_PREFIXES):
        return "wifi"
    if lowered.startswith(IGNORED_INTERFACE_PREFIXES):
        return None
    if lowered.startswith(ETHERNET_INTERFACE_PREFIXES):
        return "ethernet"
    return None


def normalize_type(type_string: str) -> str | None:
    return _TYPE_ALIASES.get(type_string.strip().lower())


class NetworkConditionDetector:
    """Combines interface metadata with IP-lookup heuristics.

    Output is advisory input to provider ranking. Detection failures degrade
    to an ``unknown`` connection type and never raise.
    """

    def __init__(
        self,
        ip_provider: IPGeolocationProvider | None = None,
        interface_source: Callable[[], list[str]] = active_interface_names,
        type_source: Callable[[], list[str]] | None = None,
        vpn_keywords: tuple[str, ...] = VPN_KEYWORDS,
        hosting_keywords: tuple[str, ...] = HOSTING_KEYWORDS,
        lookup_timeout: float = DEFAULT_IP_TIMEOUT,
    ) -> None:
        self._ip = ip_provider
        self._interface_source = interface_source
        self._type_source = type_source
        self._vpn_keywords = tuple(k.lower() for k in vpn_keywords)
        self._hosting_keywords = tuple(k.lower() for k in hosting_keywords)
        self._lookup_timeout = lookup_timeout

    async def detect(self) -> NetworkCondition:
        evidence: list[str] = []
        types = self._interface_types(evidence)

        is_vpn = "vpn" in types
        is_mobile = "mobile" in types

        if not is_vpn and self._ip is not None:
            is_vpn = await self._heuristic_vpn(evidence)

        if is_vpn:
            connection_type = "vpn"
        elif is_mobile:
            connection_type = "mobile"
        elif "wifi" in types:
            connection_type = "wifi"
        elif "ethernet" in types:
            connection_type = "ethernet"
        else:
            connection_type = "unknown"

        condition = NetworkCondition(
            is_mobile=is_mobile,
            is_vpn=is_vpn,
            # IP geolocation is not trustworthy behind a VPN or on a carrier network
            is_reliable=not (is_vpn or is_mobile),
            connection_type=connection_type,
            evidence=tuple(evidence),
        )
        logger.info(
            "network_condition",
            connection_type=connection_type,
            is_vpn=is_vpn,
            is_mobile=is_mobile,
            evidence=list(evidence),
        )
        return condition

    def _interface_types(self, evidence: list[str]) -> set[str]:
        types: set[str] = set()
        if self._type_source is not None:
            for raw in self._type_source():
                normalized = normalize_type(raw)
                if normalized:
                    types.add(normalized)
                    evidence.append(f"type:{raw}")
        if types:
            return types

        for name in self._interface_source():
            kind = classify_interface(name)
            if kind:
                types.add(kind)
                evidence.append(f"interface:{name}={kind}")
        return types

    async def _heuristic_vpn(self, evidence: list[str]) -> bool:
        endpoints = self._ip.endpoint_names[:2]
        results: list[LocationResult] = list(
            await asyncio.gather(
                *(self._ip.lookup(name, self._lookup_timeout) for name in endpoints)
            )
        )
        successes = [r for r in results if r.success]

        suspicious = False
        for r in successes:
            org = r.organization.lower()
            if not org:
                continue
            hit = self._keyword_hit(org)
            if hit:
                evidence.append(f"org:{r.source}={hit}")
                suspicious = True

        if len(successes) >= 2:
            a, b = successes[0], successes[1]
            distance = haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)
            if distance > VPN_DISAGREEMENT_KM:
                evidence.append(f"disagreement:{a.source}/{b.source}={distance:.0f}km")
                suspicious = True

        return suspicious

    def _keyword_hit(self, organization: str) -> str | None:
        for keyword in self._vpn_keywords:
            if keyword in organization:
                return keyword
        for keyword in self._hosting_keywords:
            if keyword in organization:
                return keyword
        return None
