"""Real-time event and room names.

Centralizing wire names as constants prevents typos and makes it easy
to discover every event a client can send or receive.
"""

# ─── Client → server ─────────────────────────────────────

SUBSCRIBE_FOLDER = "subscribe:folder"
SUBSCRIBE_PROCESS = "subscribe:process"
SUBSCRIBE_PRECATORIOS = "subscribe:precatorios"
SUBSCRIBE_AI = "subscribe:ai"
PING = "ping"

# ─── Server → client ─────────────────────────────────────

CONNECTED = "connected"
ERROR = "error"
PONG = "pong"
FOLDER_UPDATED = "folder:updated"
PROCESS_MOVEMENT = "process:movement"
PRECATORIO_UPDATED = "precatorio:updated"
NOTIFICATION_CREATED = "notification:created"
MESSAGE_RECEIVED = "message:received"

# ─── Rooms ───────────────────────────────────────────────

PRECATORIOS_ROOM = "precatorios:updates"


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def folder_room(folder_id: int) -> str:
    return f"folder:{folder_id}"


def process_room(process_id: int) -> str:
    return f"process:{process_id}"


def ai_room(user_id: int) -> str:
    return f"ai:{user_id}"


# Rooms only the server may publish into (one user's own stream)
PRIVATE_ROOM_PREFIXES = ("user:", "ai:")


def is_private_room(room: str) -> bool:
    return room.startswith(PRIVATE_ROOM_PREFIXES)
