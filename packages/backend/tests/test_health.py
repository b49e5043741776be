"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_reports_connected_clients(client, registry):
    registry.register("c1")
    registry.register("c2")
    data = (await client.get("/api/v1/health")).json()
    assert data["realtime"] == "ok"
    assert data["connected_clients"] == 2


@pytest.mark.asyncio
async def test_health_is_open(unauthenticated_client):
    """No token needed, and Redis being absent doesn't degrade status."""
    resp = await unauthenticated_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["redis"].startswith("unavailable")
