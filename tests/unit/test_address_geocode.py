"""Tests for the address geocoding provider."""

import httpx

from location_engine.models.domain import ErrorKind, LocationMethod
from location_engine.providers.address_geocode import AddressGeocodeProvider

GOOGLE_OK = {
    "status": "OK",
    "results": [
        {
            "geometry": {"location": {"lat": 48.8584, "lng": 2.2945}, "location_type": "ROOFTOP"},
            "address_components": [
                {"long_name": "Paris", "types": ["locality", "political"]},
                {"long_name": "Île-de-France", "types": ["administrative_area_level_1", "political"]},
                {"long_name": "France", "types": ["country", "political"]},
            ],
        }
    ],
}


def google_transport(payload=None, status_code=200, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=payload or {})

    return httpx.MockTransport(handler)


async def test_missing_credential_fails_without_network_call():
    calls: list = []
    provider = AddressGeocodeProvider(
        "Champ de Mars, Paris", api_key=None, transport=google_transport(GOOGLE_OK, calls=calls)
    )
    assert not await provider.is_available()
    result = await provider.resolve(timeout=1.0)
    assert not result.success
    assert result.error == "credential required"
    assert result.error_kind == ErrorKind.UNAVAILABLE
    assert calls == []


async def test_geocodes_address():
    calls: list = []
    provider = AddressGeocodeProvider(
        "Champ de Mars, Paris", api_key="k", transport=google_transport(GOOGLE_OK, calls=calls)
    )
    result = await provider.resolve(timeout=1.0)
    assert result.success
    assert result.method == LocationMethod.ADDRESS_GEOCODE
    assert (result.latitude, result.longitude) == (48.8584, 2.2945)
    assert result.accuracy_meters == 10.0
    assert result.place.city == "Paris"
    assert result.place.country == "France"
    assert calls[0].url.params["address"] == "Champ de Mars, Paris"


async def test_rejected_key_is_unavailable_not_transport():
    provider = AddressGeocodeProvider(
        "x", api_key="bad", transport=google_transport({"status": "REQUEST_DENIED"})
    )
    result = await provider.resolve(timeout=1.0)
    assert result.error_kind == ErrorKind.UNAVAILABLE
    assert "credential rejected" in result.error


async def test_zero_results_is_parse_failure():
    provider = AddressGeocodeProvider(
        "nowhere", api_key="k", transport=google_transport({"status": "ZERO_RESULTS", "results": []})
    )
    result = await provider.resolve(timeout=1.0)
    assert result.error_kind == ErrorKind.PARSE


async def test_network_failure_is_transport():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    provider = AddressGeocodeProvider("x", api_key="k", transport=httpx.MockTransport(handler))
    result = await provider.resolve(timeout=1.0)
    assert result.error_kind == ErrorKind.TRANSPORT
    assert result.error.startswith("network failure")
