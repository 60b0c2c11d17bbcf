"""Pydantic schemas for direct messages."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from lexdesk.schemas.common import PageMeta

Priority = Literal["low", "normal", "high"]


class MessageCreate(BaseModel):
    """Sender is the authenticated user; `user_id` is the recipient."""
    user_id: int = Field(..., description="Recipient user ID")
    subject: str = Field(..., max_length=255)
    body: str
    priority: Optional[Priority] = None
    metadata: Optional[dict[str, Any]] = None


class SenderRead(BaseModel):
    id: int
    full_name: str

    model_config = {"from_attributes": True}


class MessageRead(BaseModel):
    id: int
    user_id: int
    sender_id: Optional[int]
    sender: Optional[SenderRead] = None
    subject: str
    body: str
    priority: str
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="meta")
    read_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MessagePage(BaseModel):
    meta: PageMeta
    data: list[MessageRead]


class MessageSummary(BaseModel):
    """Header dropdown row; `from` falls back to "System"."""
    id: int
    from_: str = Field(..., alias="from")
    subject: str
    message: str
    time: datetime
    is_read: bool = Field(..., alias="isRead")
    priority: str

    model_config = ConfigDict(populate_by_name=True)
