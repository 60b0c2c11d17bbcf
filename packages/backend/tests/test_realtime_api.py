"""Realtime HTTP routes and RealtimeService helpers."""

from types import SimpleNamespace

import pytest

from lexdesk.realtime.rooms import Connection
from lexdesk.realtime.service import RealtimeService


@pytest.mark.asyncio
async def test_status_counts_this_instance(client, app, transport):
    gateway = app.state.gateway
    r = await client.get("/api/v1/realtime/status")
    assert r.json() == {"connected_users": 0, "connections": 0, "redis": False}

    await gateway.connect(transport(), SimpleNamespace(id=7))
    await gateway.connect(transport(), SimpleNamespace(id=7))
    await gateway.connect(transport(), SimpleNamespace(id=3))

    r = await client.get("/api/v1/realtime/status")
    assert r.json()["connected_users"] == 2
    assert r.json()["connections"] == 3

    r = await client.get("/api/v1/realtime/users/7/online")
    assert r.json() == {"user_id": 7, "online": True}
    r = await client.get("/api/v1/realtime/users/8/online")
    assert r.json() == {"user_id": 8, "online": False}


@pytest.mark.asyncio
async def test_broadcast_route(client, app, transport):
    socket = transport()
    app.state.gateway.rooms.join("folder:5", Connection(socket, user_id=1))

    r = await client.post("/api/v1/realtime/broadcast", json={
        "channel": "folder:5",
        "event": "folder:updated",
        "payload": {"id": 5},
    })
    assert r.status_code == 202
    assert r.json() == {"channel": "folder:5", "event": "folder:updated", "delivered_locally": 1}
    assert socket.frames == [{"event": "folder:updated", "data": {"id": 5}}]


@pytest.mark.asyncio
@pytest.mark.parametrize("channel", ["user:2", "ai:2"])
async def test_broadcast_route_refuses_private_rooms(client, app, transport, channel):
    """User 1 cannot fake notification frames into somebody else's stream."""
    socket = transport()
    app.state.gateway.rooms.join(channel, Connection(socket, user_id=2))

    r = await client.post("/api/v1/realtime/broadcast", json={
        "channel": channel,
        "event": "notification:created",
        "payload": {"title": "fake"},
    })
    assert r.status_code == 403
    assert socket.frames == []


@pytest.mark.asyncio
async def test_broadcast_route_validates_body(client):
    r = await client.post("/api/v1/realtime/broadcast", json={"channel": "", "event": "x"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_process_movement_route(client, app, transport):
    socket = transport()
    app.state.gateway.rooms.join("process:42", Connection(socket, user_id=1))

    r = await client.post("/api/v1/realtime/processes/42/movements", json={"text": "Conclusos para sentença"})
    assert r.status_code == 202
    assert r.json()["channel"] == "process:42"
    assert socket.last("process:movement")["data"] == {"text": "Conclusos para sentença"}


@pytest.mark.asyncio
async def test_precatorio_route(client, app, transport):
    socket = transport()
    app.state.gateway.rooms.join("precatorios:updates", Connection(socket, user_id=1))

    r = await client.post("/api/v1/realtime/precatorios", json={"id": 3, "status": "paid"})
    assert r.status_code == 202
    assert socket.last("precatorio:updated")["data"] == {"id": 3, "status": "paid"}


@pytest.mark.asyncio
async def test_service_relays_through_redis(app, fake_redis, transport):
    """notify_user publishes an envelope for the other instances."""
    realtime: RealtimeService = app.state.realtime
    fake_redis.wire(app.state.bridge)
    socket = transport()
    app.state.gateway.rooms.join("user:7", Connection(socket, user_id=7))

    delivered = await realtime.notify_user(7, "notification:created", {"id": 1})

    assert delivered == 1
    assert socket.events() == ["notification:created"]
    channel, envelope = fake_redis.published[0]
    assert envelope["channel"] == "user:7"
    assert envelope["origin"] == app.state.bridge.instance_id
