"""Tests for configuration loading, schema validation and provider construction."""

import json

import pytest

from location_engine.config.loader import load_location_config
from location_engine.exceptions import ConfigurationError
from location_engine.models.schemas import LocationConfig
from location_engine.providers.fixed_coordinate import FixedCoordinateProvider
from location_engine.providers.ip_geolocation import IPGeolocationProvider
from location_engine.providers.on_device import OnDeviceLocationProvider
from location_engine.providers.registry import ProviderRegistry
from tests.helpers import FakeLocationService


def write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


def test_missing_file_yields_defaults(tmp_path):
    config = load_location_config(tmp_path / "absent.json")
    assert config.provider_priority == ["ip"]
    assert config.hybrid_enabled
    assert config.cache_ttl_seconds == 300
    assert not config.consent_granted


def test_partial_file_fills_defaults(tmp_path):
    config = load_location_config(write(tmp_path, {"provider_priority": ["ip"], "consent_granted": True}))
    assert config.provider_priority == ["ip"]
    assert config.consent_granted
    assert config.cache_ttl_seconds == 300


def test_fixed_without_coordinates_fails_at_load(tmp_path):
    with pytest.raises(ConfigurationError, match="latitude"):
        load_location_config(write(tmp_path, {"provider_priority": ["fixed"]}))


def test_fixed_out_of_range_fails_at_load(tmp_path):
    data = {
        "provider_priority": ["fixed"],
        "provider_settings": {"fixed": {"latitude": 200, "longitude": 0}},
    }
    with pytest.raises(ConfigurationError, match="out of range"):
        load_location_config(write(tmp_path, data))


def test_unknown_provider_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        load_location_config(write(tmp_path, {"provider_priority": ["satellite"]}))


def test_malformed_json_rejected(tmp_path):
    with pytest.raises(ConfigurationError, match="Cannot read"):
        load_location_config(write(tmp_path, "{not json"))


def test_duplicate_priority_rejected():
    with pytest.raises(ValueError):
        LocationConfig(provider_priority=["ip", "ip"])


def test_registry_builds_in_order(settings):
    config = LocationConfig(
        provider_priority=["fixed", "ip", "on_device"],
        provider_settings={"fixed": {"latitude": 1.5, "longitude": 2.5, "weight": 0.75}},
        consent_granted=True,
    )
    registry = ProviderRegistry(settings, location_service=FakeLocationService())
    built = registry.build_all(config)

    assert [cp.name for cp in built] == ["fixed", "ip", "on_device"]
    assert isinstance(built[0].provider, FixedCoordinateProvider)
    assert isinstance(built[1].provider, IPGeolocationProvider)
    assert isinstance(built[2].provider, OnDeviceLocationProvider)
    assert built[0].descriptor.static_weight == 0.75
    assert built[1].descriptor.static_weight == 0.6
    assert built[2].descriptor.requires_user_consent
    assert built[1].timeout == settings.ip_timeout_seconds


def test_registry_rejects_bad_weight(settings):
    config = LocationConfig(provider_priority=["ip"], provider_settings={"ip": {"weight": 1.5}})
    with pytest.raises(ConfigurationError, match="static_weight"):
        ProviderRegistry(settings).build_all(config)


def test_registry_rejects_unknown_endpoint(settings):
    config = LocationConfig(provider_priority=["ip"], provider_settings={"ip": {"endpoints": ["nope"]}})
    with pytest.raises(ConfigurationError):
        ProviderRegistry(settings).build_all(config)


def test_candidate_names_include_configured_extras(settings):
    config = LocationConfig(
        provider_priority=["ip"],
        provider_settings={
            "fixed": {"latitude": 1.0, "longitude": 1.0},
            "address_geocode": {"address": "10 Downing St"},
        },
    )
    names = ProviderRegistry(settings).candidate_names(config)
    assert names == ["ip", "on_device", "fixed", "address_geocode"]


def test_default_priority_includes_fixed_once_configured(tmp_path):
    data = {"provider_settings": {"fixed": {"latitude": 40.7128, "longitude": -74.006}}}
    config = load_location_config(write(tmp_path, data))
    assert config.provider_priority == ["ip", "fixed"]
