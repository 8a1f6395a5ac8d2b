"""Shared test fixtures."""

from __future__ import annotations

import json

import pytest

from location_engine.config.settings import Settings
from tests.helpers import NYC


@pytest.fixture
def settings(tmp_path):
    """Test settings with temp paths and short timeouts."""
    return Settings(
        google_api_key="",
        config_path=str(tmp_path / "location_config.json"),
        sqlite_db_path=str(tmp_path / "location_engine.db"),
        ip_timeout_seconds=2.0,
        on_device_timeout_seconds=2.0,
        geocode_timeout_seconds=2.0,
        availability_timeout_seconds=1.0,
        cycle_deadline_seconds=5.0,
        assessment_iterations=1,
    )


@pytest.fixture
def fixed_config_file(tmp_path):
    """Config file with IP + fixed New York coordinates."""
    path = tmp_path / "location_config.json"
    path.write_text(
        json.dumps(
            {
                "provider_priority": ["ip", "fixed"],
                "provider_settings": {
                    "fixed": {"latitude": NYC[0], "longitude": NYC[1], "city": "New York"}
                },
            }
        )
    )
    return path
