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
    assert "version" in data
    assert data["status"] in ("healthy", "degraded")


@pytest.mark.asyncio
async def test_health_reports_local_connections(client, app, transport):
    """Socket count comes from this app's gateway."""
    from lexdesk.realtime.rooms import Connection

    resp = await client.get("/api/v1/health")
    assert resp.json()["connections"] == 0

    conn = Connection(transport(), user_id=1)
    app.state.gateway.registry.add(1, conn.id)

    resp = await client.get("/api/v1/health")
    assert resp.json()["connections"] == 1


@pytest.mark.asyncio
async def test_health_is_open(unauthenticated_client):
    """No token needed for health checks."""
    resp = await unauthenticated_client.get("/api/v1/health")
    assert resp.status_code == 200
