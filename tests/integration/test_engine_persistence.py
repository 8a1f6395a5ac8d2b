"""Integration tests for rankings persisted across engine restarts."""

import pytest

from location_engine.exceptions import ConfigurationError
from location_engine.models.domain import RankedConfig
from location_engine.models.schemas import LocationConfig
from location_engine.pipeline.location_pipeline import LocationEngine, create_engine
from location_engine.providers.registry import ProviderRegistry
from location_engine.storage.sqlite_config_store import SQLiteConfigStore
from tests.helpers import FakeLocationService, ip_transport

DEVICE_FIX = {"latitude": 40.7130, "longitude": -74.0050, "h_accuracy": 8.0, "locality": "New York"}


class UnbuildableOptimizer:
    """Returns a ranking naming fixed without any coordinates to build it from."""

    def optimize(self, **kwargs) -> RankedConfig:
        return RankedConfig(provider_order=["fixed"], provider_settings={}, hybrid_enabled=False)


async def start(settings):
    return await create_engine(
        settings,
        transport=ip_transport(),
        location_service=FakeLocationService({"best": DEVICE_FIX}),
    )


async def test_consent_from_optimization_survives_restart(settings):
    engine = await start(settings)
    assert not engine.config.consent_granted

    ranked = await engine.optimize_configuration(consent_granted=True)
    assert "on_device" in ranked.provider_order
    assert ranked.consent_granted

    restarted = await start(settings)
    assert restarted.config.consent_granted
    assert restarted.config.provider_priority == ranked.provider_order
    result = await restarted.resolve_location()
    assert result.success
    assert result.source == "device:best"


async def test_rejected_ranking_is_not_persisted(settings, tmp_path):
    store = SQLiteConfigStore(str(tmp_path / "configs.db"))
    await store.initialize()
    engine = LocationEngine(
        settings,
        LocationConfig(provider_priority=["ip"]),
        ProviderRegistry(settings, transport=ip_transport()),
        optimizer=UnbuildableOptimizer(),
        config_store=store,
    )

    with pytest.raises(ConfigurationError):
        await engine.optimize_configuration()

    assert await store.latest() is None
    assert [cp.name for cp in engine.providers] == ["ip"]
