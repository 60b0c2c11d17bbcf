"""Subscription router — client `subscribe:*` events → room joins.

Learn: Clients send {"event": "subscribe:folder", "data": 12}; the router
checks access and joins the connection to `folder:12`. Nothing is
persisted: a reconnecting client has to subscribe again.

Who may watch which folder or process is not decided here. The router
asks an AccessPolicy; the shipped AllowAuthenticatedPolicy lets any
authenticated user in. Swap in a real policy via ConnectionGateway(policy=...).
"""

from typing import Any, Awaitable, Callable, Optional

import structlog

from lexdesk.errors import AccessDenied, ValidationFailed
from lexdesk.events import types as ev
from lexdesk.realtime.rooms import Connection, RoomManager

logger = structlog.get_logger()


class AccessPolicy:
    """Decides whether a user may join a topic room."""

    async def can_subscribe_folder(self, user_id: int, folder_id: int) -> bool:
        raise NotImplementedError

    async def can_subscribe_process(self, user_id: int, process_id: int) -> bool:
        raise NotImplementedError


class AllowAuthenticatedPolicy(AccessPolicy):
    """Any authenticated user may watch any folder or process."""

    async def can_subscribe_folder(self, user_id: int, folder_id: int) -> bool:
        return True

    async def can_subscribe_process(self, user_id: int, process_id: int) -> bool:
        return True


def _topic_id(data: Any, label: str) -> int:
    """Accept 12, "12" or {"id": 12}; anything else is a client error."""
    if isinstance(data, dict):
        data = data.get("id")
    if isinstance(data, bool):
        raise ValidationFailed(f"Invalid {label} id")
    if isinstance(data, int):
        return data
    if isinstance(data, str) and data.strip().isdigit():
        return int(data)
    raise ValidationFailed(f"Invalid {label} id")


class SubscriptionRouter:
    def __init__(self, rooms: RoomManager, policy: Optional[AccessPolicy] = None):
        self.rooms = rooms
        self.policy = policy or AllowAuthenticatedPolicy()
        self._handlers: dict[str, Callable[[Connection, Any], Awaitable[str]]] = {
            ev.SUBSCRIBE_FOLDER: self.subscribe_folder,
            ev.SUBSCRIBE_PROCESS: self.subscribe_process,
            ev.SUBSCRIBE_PRECATORIOS: self.subscribe_precatorios,
            ev.SUBSCRIBE_AI: self.subscribe_ai,
        }

    def handles(self, event: str) -> bool:
        return event in self._handlers

    async def dispatch(self, conn: Connection, event: str, data: Any = None) -> str:
        """Run the handler for `event`. Returns the room joined."""
        handler = self._handlers.get(event)
        if handler is None:
            raise ValidationFailed(f"Unknown event: {event}")
        return await handler(conn, data)

    async def subscribe_folder(self, conn: Connection, data: Any) -> str:
        folder_id = _topic_id(data, "folder")
        if not await self.policy.can_subscribe_folder(conn.user_id, folder_id):
            raise AccessDenied("Access denied to folder")
        return self._join(conn, ev.folder_room(folder_id))

    async def subscribe_process(self, conn: Connection, data: Any) -> str:
        process_id = _topic_id(data, "process")
        if not await self.policy.can_subscribe_process(conn.user_id, process_id):
            raise AccessDenied("Access denied to process")
        return self._join(conn, ev.process_room(process_id))

    async def subscribe_precatorios(self, conn: Connection, data: Any = None) -> str:
        return self._join(conn, ev.PRECATORIOS_ROOM)

    async def subscribe_ai(self, conn: Connection, data: Any = None) -> str:
        return self._join(conn, ev.ai_room(conn.user_id))

    def _join(self, conn: Connection, room: str) -> str:
        self.rooms.join(room, conn)
        logger.info("realtime.subscribed_room", user_id=conn.user_id, room=room)
        return room
