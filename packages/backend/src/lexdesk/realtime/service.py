"""RealtimeService — the API the rest of the app uses to push events.

Learn: Routes and background jobs never touch rooms or Redis directly; they call
these helpers, which pick the room and event name and go through the
bridge so every instance delivers.
"""

from typing import Any

from fastapi import Request

from lexdesk.events import types as ev
from lexdesk.realtime.gateway import ConnectionGateway
from lexdesk.realtime.pubsub import FanoutBridge


class RealtimeService:
    def __init__(self, bridge: FanoutBridge, gateway: ConnectionGateway):
        self.bridge = bridge
        self.gateway = gateway

    async def broadcast(self, channel: str, event: str, data: Any = None) -> int:
        return await self.bridge.broadcast(channel, event, data)

    async def notify_user(self, user_id: int, event: str, data: Any = None) -> int:
        return await self.broadcast(ev.user_room(user_id), event, data)

    async def broadcast_folder_update(self, folder_id: int, data: Any) -> int:
        return await self.broadcast(ev.folder_room(folder_id), ev.FOLDER_UPDATED, data)

    async def broadcast_process_movement(self, process_id: int, movement: Any) -> int:
        return await self.broadcast(ev.process_room(process_id), ev.PROCESS_MOVEMENT, movement)

    async def broadcast_precatorio_update(self, data: Any) -> int:
        return await self.broadcast(ev.PRECATORIOS_ROOM, ev.PRECATORIO_UPDATED, data)

    def connected_users_count(self) -> int:
        return self.gateway.connected_users_count()

    def connection_count(self) -> int:
        return self.gateway.connection_count()

    def is_user_online(self, user_id: int) -> bool:
        return self.gateway.is_user_online(user_id)


def get_realtime(request: Request) -> RealtimeService:
    """FastAPI dependency — the app's RealtimeService (built in create_app)."""
    return request.app.state.realtime
