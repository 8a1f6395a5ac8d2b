"""Load the persisted provider configuration (JSON)."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from location_engine.exceptions import ConfigurationError
from location_engine.models.schemas import LocationConfig
from location_engine.observability.logger import get_logger

logger = get_logger("config_loader")


def load_location_config(path: str | Path) -> LocationConfig:
    """Read the config file. A missing file means all defaults."""
    p = Path(path)
    if not p.exists():
        logger.info("config_defaults", path=str(p))
        return LocationConfig()

    try:
        with open(p) as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read config file {p}: {e}") from e

    try:
        config = LocationConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {p}: {e}") from e

    logger.info("config_loaded", path=str(p), providers=config.provider_priority)
    return config

