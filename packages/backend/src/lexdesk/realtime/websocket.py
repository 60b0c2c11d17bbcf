"""WebSocket endpoint — real-time event delivery to frontend clients.

Learn: Each client connects to /ws?token=JWT (or sends Authorization: Bearer).
The handler:
1. Authenticates before any frame is processed; failures are accepted
   and immediately closed with a 4xxx code and reason
2. Hands the socket to the app's ConnectionGateway
3. Feeds every client frame {"event", "data"} to the gateway
4. Unregisters the connection when the client goes away

Server → client delivery doesn't happen here: the FanoutBridge writes
straight to the sockets the gateway has joined to rooms.
"""

import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from lexdesk.db.engine import async_session_factory
from lexdesk.db.models import User
from lexdesk.errors import LexdeskError, UserNotFound
from lexdesk.events import types as ev
from lexdesk.realtime.gateway import ConnectionGateway, UserLoader

logger = structlog.get_logger()
router = APIRouter()

CLOSE_AUTH = 4001
CLOSE_USER_NOT_FOUND = 4004


async def load_user(user_id: int) -> Optional[User]:
    async with async_session_factory() as session:
        return await session.get(User, user_id)


def get_user_loader() -> UserLoader:
    """Dependency seam so tests can resolve users without a database."""
    return load_user


def _close_code(error: LexdeskError) -> int:
    return CLOSE_USER_NOT_FOUND if isinstance(error, UserNotFound) else CLOSE_AUTH


@router.websocket("/ws")
async def realtime_websocket(
    websocket: WebSocket,
    user_loader: UserLoader = Depends(get_user_loader),
):
    """Long-lived connection — one per browser tab."""
    gateway: ConnectionGateway = websocket.app.state.gateway

    # ── Authentication ──────────────────────────────────────
    token = gateway.extract_token(
        websocket.query_params.get("token"),
        websocket.headers.get("authorization"),
    )
    try:
        user = await gateway.authenticate(token, user_loader)
    except LexdeskError as e:
        # A close before accept reaches clients as a bare HTTP 403, without the code
        await websocket.accept()
        await websocket.close(code=_close_code(e), reason=e.message)
        return

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()
    conn = await gateway.connect(websocket, user)

    reason = "server closed"
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await conn.emit(ev.ERROR, {"message": "Malformed frame"})
                continue
            if not isinstance(frame, dict):
                await conn.emit(ev.ERROR, {"message": "Malformed frame"})
                continue
            await gateway.handle_event(conn, frame.get("event"), frame.get("data"))
    except WebSocketDisconnect as e:
        reason = f"client disconnect ({e.code})"
    finally:
        await gateway.disconnect(conn, reason)
