"""Connection gateway — who is connected, and to which rooms.

Learn: Lifecycle of one socket:
1. authenticate(): token → verified claims → user row (or a typed error)
2. connect(): bind user, join `user:<id>`, register, greet with `connected`
3. handle_event(): route client frames; failures become `error` frames
4. disconnect(): leave every room, unregister

The gateway owns its RoomManager, ConnectionRegistry and
SubscriptionRouter, one set per application. Tests build a gateway with
fake transports and never touch a real socket.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import structlog

from lexdesk.auth.dependencies import bearer_token
from lexdesk.auth.jwt import TokenError, user_id_from_payload, verify_token
from lexdesk.errors import (
    AuthenticationFailed,
    AuthenticationRequired,
    LexdeskError,
    UserNotFound,
)
from lexdesk.events import types as ev
from lexdesk.realtime.registry import ConnectionRegistry
from lexdesk.realtime.rooms import Connection, RoomManager
from lexdesk.realtime.subscriptions import AccessPolicy, SubscriptionRouter

logger = structlog.get_logger()

UserLoader = Callable[[int], Awaitable[Optional[Any]]]

WELCOME_MESSAGE = "Welcome to the lexdesk real-time system"


class ConnectionGateway:
    def __init__(
        self,
        *,
        rooms: Optional[RoomManager] = None,
        registry: Optional[ConnectionRegistry] = None,
        policy: Optional[AccessPolicy] = None,
    ):
        self.rooms = rooms or RoomManager()
        self.registry = registry or ConnectionRegistry()
        self.router = SubscriptionRouter(self.rooms, policy)

    # ─── Authentication ───────────────────────────────────

    @staticmethod
    def extract_token(
        query_token: Optional[str] = None,
        authorization: Optional[str] = None,
    ) -> Optional[str]:
        """Handshake token: ?token= wins, then the Authorization header."""
        if query_token and query_token.strip():
            return query_token.strip()
        return bearer_token(authorization)

    async def authenticate(self, token: Optional[str], load_user: UserLoader) -> Any:
        """Resolve a handshake token to a user.

        Raises AuthenticationRequired, AuthenticationFailed or UserNotFound.
        """
        if not token:
            raise AuthenticationRequired()

        try:
            payload = verify_token(token, token_type="access")
            user_id = user_id_from_payload(payload)
        except TokenError as e:
            logger.warning("realtime.auth_failed", error=str(e))
            raise AuthenticationFailed()

        user = await load_user(user_id)
        if user is None:
            logger.warning("realtime.auth_failed", user_id=user_id, error="user not found")
            raise UserNotFound()
        return user

    # ─── Connection lifecycle ─────────────────────────────

    async def connect(self, transport, user) -> Connection:
        conn = Connection(transport, user_id=user.id)
        self.rooms.join(ev.user_room(user.id), conn)
        self.registry.add(user.id, conn.id)
        logger.info("realtime.connected", user_id=user.id, connection_id=conn.id)

        await conn.emit(ev.CONNECTED, {
            "message": WELCOME_MESSAGE,
            "userId": user.id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        return conn

    async def disconnect(self, conn: Connection, reason: str = "") -> None:
        self.rooms.leave_all(conn)
        went_offline = self.registry.remove(conn.user_id, conn.id)
        logger.info(
            "realtime.disconnected",
            user_id=conn.user_id,
            connection_id=conn.id,
            reason=reason,
            offline=went_offline,
        )

    async def handle_event(self, conn: Connection, event: Any, data: Any = None) -> None:
        """Process one client frame. Never raises for client mistakes."""
        if event == ev.PING:
            await conn.emit(ev.PONG)
            return

        if not isinstance(event, str):
            await conn.emit(ev.ERROR, {"message": "Event name is required"})
            return

        try:
            await self.router.dispatch(conn, event, data)
        except LexdeskError as e:
            logger.info(
                "realtime.event_rejected",
                user_id=conn.user_id,
                realtime_event=event,
                error=e.message,
            )
            await conn.emit(ev.ERROR, {"message": e.message})

    # ─── Queries ──────────────────────────────────────────

    def is_user_online(self, user_id: int) -> bool:
        return self.registry.is_online(user_id)

    def connected_users_count(self) -> int:
        return self.registry.user_count()

    def connection_count(self) -> int:
        return self.registry.connection_count()
