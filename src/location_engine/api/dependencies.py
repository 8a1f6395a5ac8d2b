"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from location_engine.config.settings import Settings
from location_engine.pipeline.location_pipeline import LocationEngine


def get_engine(request: Request) -> LocationEngine:
    return request.app.state.engine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
