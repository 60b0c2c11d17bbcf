"""Connections and rooms — the process-local half of fan-out.

Learn: A Connection wraps whatever transport delivers frames to one client
(a Starlette WebSocket in production, a recorder in tests). Anything
with an async send_json(dict) works.

Frames on the wire are {"event": name, "data": payload}.
"""

import uuid
from typing import Any, Optional

import structlog
from fastapi.encoders import jsonable_encoder

logger = structlog.get_logger()


class Connection:
    """One live client socket, bound to a single user for its lifetime."""

    def __init__(self, transport, user_id: int, connection_id: Optional[str] = None):
        self.id = connection_id or uuid.uuid4().hex
        self.user_id = user_id
        self.transport = transport
        self.rooms: set[str] = set()

    async def emit(self, event: str, data: Any = None) -> None:
        await self.transport.send_json({"event": event, "data": jsonable_encoder(data)})

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, user_id={self.user_id})"


class RoomManager:
    """Many-to-many membership between connections and named rooms."""

    def __init__(self):
        self._rooms: dict[str, dict[str, Connection]] = {}

    def join(self, room: str, conn: Connection) -> None:
        self._rooms.setdefault(room, {})[conn.id] = conn
        conn.rooms.add(room)

    def leave(self, room: str, conn: Connection) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.pop(conn.id, None)
            if not members:
                del self._rooms[room]
        conn.rooms.discard(room)

    def leave_all(self, conn: Connection) -> list[str]:
        """Drop a connection from every room it joined (used on disconnect)."""
        left = sorted(conn.rooms)
        for room in left:
            self.leave(room, conn)
        return left

    def members(self, room: str) -> list[Connection]:
        return list(self._rooms.get(room, {}).values())

    def room_names(self) -> list[str]:
        return sorted(self._rooms)

    async def emit(self, room: str, event: str, data: Any = None) -> int:
        """Send to every local member of `room`. Returns how many got it.

        A socket that fails mid-send is logged and skipped; its own
        receive loop will notice the disconnect and clean it up.
        """
        delivered = 0
        for conn in self.members(room):
            try:
                await conn.emit(event, data)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "realtime.emit_failed",
                    room=room,
                    realtime_event=event,
                    connection_id=conn.id,
                    error=str(e),
                )
        return delivered
