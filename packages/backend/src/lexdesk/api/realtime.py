"""Realtime API — server-side hooks into the fan-out layer.

For integrations and background jobs that run outside a request for a
specific user (court feed sync, process tracking):
- GET /realtime/status → connected users/connections on this instance
- GET /realtime/users/:id/online → is the user connected to this instance
- POST /realtime/broadcast → push any event to a shared room (folder,
  process, precatorios); per-user rooms are refused with 403
- POST /realtime/processes/:id/movements → process:movement to process:<id>
- POST /realtime/precatorios → precatorio:updated to the precatorio feed
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from lexdesk.events.types import (
    PRECATORIOS_ROOM,
    PRECATORIO_UPDATED,
    PROCESS_MOVEMENT,
    is_private_room,
    process_room,
)
from lexdesk.realtime.service import RealtimeService, get_realtime
from lexdesk.schemas.realtime import (
    BroadcastRead,
    BroadcastRequest,
    OnlineRead,
    RealtimeStatusRead,
)

router = APIRouter(prefix="/realtime")


@router.get("/status", response_model=RealtimeStatusRead)
async def realtime_status(realtime: RealtimeService = Depends(get_realtime)):
    return {
        "connected_users": realtime.connected_users_count(),
        "connections": realtime.connection_count(),
        "redis": realtime.bridge.redis is not None,
    }


@router.get("/users/{user_id}/online", response_model=OnlineRead)
async def user_online(user_id: int, realtime: RealtimeService = Depends(get_realtime)):
    return {"user_id": user_id, "online": realtime.is_user_online(user_id)}


@router.post("/broadcast", response_model=BroadcastRead, status_code=202)
async def broadcast(
    body: BroadcastRequest,
    realtime: RealtimeService = Depends(get_realtime),
):
    if is_private_room(body.channel):
        # Per-user streams are written only by the notification/message services
        raise HTTPException(status_code=403, detail="Cannot broadcast to a private room")

    delivered = await realtime.broadcast(body.channel, body.event, body.payload)
    return {"channel": body.channel, "event": body.event, "delivered_locally": delivered}


@router.post("/processes/{process_id}/movements", response_model=BroadcastRead, status_code=202)
async def process_movement(
    process_id: int,
    movement: dict[str, Any] = Body(...),
    realtime: RealtimeService = Depends(get_realtime),
):
    delivered = await realtime.broadcast_process_movement(process_id, movement)
    return {
        "channel": process_room(process_id),
        "event": PROCESS_MOVEMENT,
        "delivered_locally": delivered,
    }


@router.post("/precatorios", response_model=BroadcastRead, status_code=202)
async def precatorio_update(
    update: dict[str, Any] = Body(...),
    realtime: RealtimeService = Depends(get_realtime),
):
    delivered = await realtime.broadcast_precatorio_update(update)
    return {"channel": PRECATORIOS_ROOM, "event": PRECATORIO_UPDATED, "delivered_locally": delivered}
