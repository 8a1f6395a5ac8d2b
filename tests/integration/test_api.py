"""Integration tests for the HTTP API."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from location_engine.api.app import create_app
from location_engine.storage.sqlite_trace_store import SQLiteTraceStore
from tests.helpers import ip_transport


@pytest.fixture
def client(settings, fixed_config_file):
    app = create_app(settings, transport=ip_transport())
    with TestClient(app) as c:
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["providers"] == ["ip", "fixed"]
    assert data["hybrid_enabled"] is True
    assert data["cache_ttl_seconds"] == 300


def test_location_hybrid_result(client):
    resp = client.get("/location")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["method"] == "Hybrid"
    assert data["source"] == "fixed"
    assert data["city"] == "New York"
    assert (data["latitude"], data["longitude"]) == (40.7128, -74.006)
    assert data["consulted"] == ["ip", "fixed"]
    assert "X-Request-ID" in resp.headers


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_cache_clear(client):
    assert client.get("/location").status_code == 200
    resp = client.delete("/cache")
    assert resp.status_code == 200
    assert resp.json() == {"status": "cleared"}


def test_location_exhausted_returns_503(settings, tmp_path):
    config = tmp_path / "location_config.json"
    config.write_text(json.dumps({"provider_priority": ["ip"]}))
    app = create_app(settings, transport=ip_transport(payloads={}))
    with TestClient(app) as c:
        resp = c.get("/location")
    assert resp.status_code == 503
    data = resp.json()
    assert data["success"] is False
    assert data["error"] == "AllProvidersExhausted"
    assert data["error_kind"] == "all_providers_exhausted"
    assert data["latitude"] is None


def test_resolution_writes_trace(client, settings):
    client.get("/location")

    async def recent():
        return await SQLiteTraceStore(settings.sqlite_db_path).get_recent_traces()

    traces = asyncio.run(recent())
    assert traces
    assert traces[0].method == "Hybrid"


def test_assess_providers(client):
    resp = client.post("/providers/assess", json={"iterations": 1})
    assert resp.status_code == 200
    labels = {a["endpoint"] for a in resp.json()}
    assert labels == {"ipapi.co", "ipinfo.io", "ip-api.com", "fixed"}
    assert all(0 <= a["reliability_score"] <= 100 for a in resp.json())


def test_assess_rejects_bad_iterations(client):
    resp = client.post("/providers/assess", json={"iterations": 0})
    assert resp.status_code == 422


def test_network(client):
    resp = client.get("/network")
    assert resp.status_code == 200
    data = resp.json()
    assert set(data) == {"is_mobile", "is_vpn", "is_reliable", "connection_type", "evidence"}
