"""Pydantic schemas for the realtime HTTP endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class BroadcastRequest(BaseModel):
    """Push an event to a room on every instance (integrations, jobs)."""
    channel: str = Field(..., min_length=1, description="Room name, e.g. folder:12")
    event: str = Field(..., min_length=1, description="Event name, e.g. folder:updated")
    payload: Optional[Any] = None


class BroadcastRead(BaseModel):
    channel: str
    event: str
    delivered_locally: int


class RealtimeStatusRead(BaseModel):
    connected_users: int
    connections: int
    redis: bool


class OnlineRead(BaseModel):
    user_id: int
    online: bool
