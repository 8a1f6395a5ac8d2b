"""Tests for the fixed-coordinate provider."""

from location_engine.models.domain import ErrorKind, LocationMethod, Place
from location_engine.providers.fixed_coordinate import FixedCoordinateProvider


async def test_round_trip_exact_coordinates():
    provider = FixedCoordinateProvider(40.7128, -74.0060, place=Place.from_parts("New York"))
    result = await provider.resolve(timeout=1.0)
    assert result.success
    assert result.method == LocationMethod.FIXED
    assert (result.latitude, result.longitude) == (40.7128, -74.0060)
    assert result.place.city == "New York"


async def test_out_of_range_latitude_fails_without_clamping():
    provider = FixedCoordinateProvider(200.0, 10.0)
    result = await provider.resolve(timeout=1.0)
    assert not result.success
    assert result.error_kind == ErrorKind.INVALID_COORDINATES
    assert "out of range" in result.error
    assert result.latitude is None


async def test_missing_coordinates_unavailable():
    provider = FixedCoordinateProvider(None, 10.0)
    assert not await provider.is_available()
    result = await provider.resolve(timeout=1.0)
    assert result.error_kind == ErrorKind.UNAVAILABLE


async def test_available_when_configured():
    assert await FixedCoordinateProvider(0.0, 0.0).is_available()
