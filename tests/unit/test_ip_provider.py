"""Tests for IP geolocation endpoints and the fallback provider."""

import asyncio

import httpx
import pytest

from location_engine.exceptions import ConfigurationError, ProviderParseError
from location_engine.models.domain import ErrorKind, LocationMethod
from location_engine.providers.ip_endpoints import (
    parse_ip_api_com,
    parse_ipapi_co,
    parse_ipinfo_io,
    parse_ipwho_is,
)
from location_engine.providers.ip_geolocation import IPGeolocationProvider
from tests.helpers import IP_API_NYC, IPAPI_CO_NYC, IPINFO_NYC, ip_transport


def test_parse_ipinfo_splits_loc():
    parsed = parse_ipinfo_io(IPINFO_NYC)
    assert parsed.latitude == pytest.approx(40.7143)
    assert parsed.longitude == pytest.approx(-74.006)
    assert parsed.place.country == "US"
    assert "Comcast" in parsed.organization


def test_parse_ipapi_co_uses_country_name():
    parsed = parse_ipapi_co(IPAPI_CO_NYC)
    assert parsed.place.country == "United States"


def test_parse_ipapi_co_error_payload():
    with pytest.raises(ProviderParseError, match="RateLimited"):
        parse_ipapi_co({"error": True, "reason": "RateLimited"})


def test_parse_ip_api_com_flags_hosting():
    parsed = parse_ip_api_com({**IP_API_NYC, "hosting": True})
    assert parsed.organization.endswith("[proxy/hosting]")


def test_parse_ip_api_com_failure_status():
    with pytest.raises(ProviderParseError):
        parse_ip_api_com({"status": "fail", "message": "private range"})


def test_parse_ipwho_is_rejects_out_of_range():
    with pytest.raises(ProviderParseError, match="out of range"):
        parse_ipwho_is({"success": True, "latitude": 95.0, "longitude": 0.0})


def test_parse_ipinfo_missing_loc():
    with pytest.raises(ProviderParseError):
        parse_ipinfo_io({"city": "Nowhere"})


def test_unknown_endpoint_fails_fast():
    with pytest.raises(ConfigurationError, match="Unknown IP endpoint"):
        IPGeolocationProvider(endpoints=["example.invalid"])


async def test_first_endpoint_answers():
    calls: dict = {}
    provider = IPGeolocationProvider(transport=ip_transport(counter=calls))
    result = await provider.resolve(timeout=2.0)
    assert result.success
    assert result.method == LocationMethod.IP
    assert result.source == "ipapi.co"
    assert result.place.city == "New York"
    assert calls == {"ipapi.co": 1}


async def test_falls_back_in_order():
    calls: dict = {}
    transport = ip_transport({"ipinfo.io": IPINFO_NYC, "ip-api.com": IP_API_NYC}, counter=calls)
    provider = IPGeolocationProvider(transport=transport)
    result = await provider.resolve(timeout=2.0)
    assert result.success
    assert result.source == "ipinfo.io"
    assert calls == {"ipapi.co": 1, "ipinfo.io": 1}


async def test_malformed_response_falls_through():
    transport = ip_transport({"ipapi.co": {"latitude": "n/a"}, "ipinfo.io": IPINFO_NYC})
    result = await IPGeolocationProvider(transport=transport).resolve(timeout=2.0)
    assert result.source == "ipinfo.io"


async def test_all_endpoints_fail_combined_message():
    provider = IPGeolocationProvider(transport=ip_transport({}))
    result = await provider.resolve(timeout=2.0)
    assert not result.success
    assert result.latitude is None
    assert result.error.startswith("All IP endpoints failed")
    for name in ("ipapi.co", "ipinfo.io", "ip-api.com"):
        assert name in result.error
    assert result.error_kind == ErrorKind.TRANSPORT


async def test_connection_errors_are_transport_failures():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = IPGeolocationProvider(endpoints=["ipapi.co"], transport=httpx.MockTransport(handler))
    result = await provider.resolve(timeout=2.0)
    assert result.error_kind == ErrorKind.TRANSPORT
    assert "connection refused" in result.error


async def test_slow_endpoint_times_out():
    provider = IPGeolocationProvider(endpoints=["ipapi.co"], transport=ip_transport(delay=1.0))
    result = await provider.resolve(timeout=0.05)
    assert not result.success
    assert result.error == "timeout"
    assert result.error_kind == ErrorKind.TIMEOUT


async def test_timeout_is_a_budget_across_endpoints():
    provider = IPGeolocationProvider(transport=ip_transport(delay=1.0))
    start = asyncio.get_running_loop().time()
    result = await provider.resolve(timeout=0.1)
    assert result.error == "timeout"
    assert asyncio.get_running_loop().time() - start < 0.5


async def test_lookup_single_endpoint_reports_source_on_failure():
    provider = IPGeolocationProvider(transport=ip_transport({}))
    result = await provider.lookup("ipinfo.io", timeout=1.0)
    assert not result.success
    assert result.source == "ipinfo.io"
    assert result.error == "HTTP 500"
