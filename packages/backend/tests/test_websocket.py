"""WebSocket endpoint tests — the real /ws route through Starlette's TestClient.

The user loader is swapped for a stub (no database), and tokens are
real JWTs. A rejected handshake is accepted and then closed, so the first
receive raises WebSocketDisconnect with the server's code and reason.
"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from lexdesk.auth.dependencies import CurrentIdentity, get_current_user
from lexdesk.auth.jwt import create_access_token
from lexdesk.realtime.websocket import CLOSE_AUTH, CLOSE_USER_NOT_FOUND, get_user_loader


@pytest.fixture
def ws_app(app):
    async def load_user(user_id: int):
        return SimpleNamespace(id=user_id) if user_id in (3, 7) else None

    app.dependency_overrides[get_user_loader] = lambda: load_user
    app.dependency_overrides[get_current_user] = lambda: CurrentIdentity(user_id=1)
    return app


@pytest.fixture
def ws_client(ws_app):
    with TestClient(ws_app) as client:
        yield client


def test_handshake_without_token_closes_4001(ws_client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect("/ws") as ws:
            ws.receive_json()
    assert exc.value.code == CLOSE_AUTH
    assert exc.value.reason == "Authentication required"


def test_handshake_with_garbage_token_closes_4001(ws_client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect("/ws?token=not.a.jwt") as ws:
            ws.receive_json()
    assert exc.value.code == CLOSE_AUTH


def test_handshake_for_missing_user_closes_4004(ws_client):
    token = create_access_token(404)
    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect(f"/ws?token={token}") as ws:
            ws.receive_json()
    assert exc.value.code == CLOSE_USER_NOT_FOUND
    assert exc.value.reason == "User not found"


def test_connect_with_query_token(ws_client, ws_app):
    token = create_access_token(7)
    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        welcome = ws.receive_json()
        assert welcome["event"] == "connected"
        assert welcome["data"]["userId"] == 7
        assert ws_app.state.gateway.is_user_online(7)

    assert not ws_app.state.gateway.is_user_online(7)


def test_connect_with_authorization_header(ws_client):
    token = create_access_token(3)
    with ws_client.websocket_connect("/ws", headers={"Authorization": f"Bearer {token}"}) as ws:
        assert ws.receive_json()["data"]["userId"] == 3


def test_ping_and_errors_keep_socket_open(ws_client):
    token = create_access_token(7)
    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.receive_json()

        ws.send_text("{broken")
        assert ws.receive_json() == {"event": "error", "data": {"message": "Malformed frame"}}

        ws.send_json({"event": "subscribe:folder", "data": "abc"})
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"event": "ping"})
        assert ws.receive_json() == {"event": "pong", "data": None}


def test_subscribed_socket_receives_broadcast(ws_client):
    """subscribe:folder, then an HTTP broadcast to that folder arrives."""
    token = create_access_token(7)
    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.receive_json()
        ws.send_json({"event": "subscribe:folder", "data": 5})
        # the loop handles frames in order, so a pong means the join is done
        ws.send_json({"event": "ping"})
        assert ws.receive_json()["event"] == "pong"

        r = ws_client.post("/api/v1/realtime/broadcast", json={
            "channel": "folder:5",
            "event": "folder:updated",
            "payload": {"id": 5, "status": "closed"},
        })
        assert r.status_code == 202
        assert r.json()["delivered_locally"] == 1

        assert ws.receive_json() == {
            "event": "folder:updated",
            "data": {"id": 5, "status": "closed"},
        }
