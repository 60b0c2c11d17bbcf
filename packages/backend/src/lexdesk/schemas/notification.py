"""Pydantic schemas for notifications.

Types:
- info / success / warning / error: generic UI alerts
- task / hearing / deadline: practice events with an optional action link
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from lexdesk.schemas.common import PageMeta

NotificationType = Literal["info", "success", "warning", "error", "task", "hearing", "deadline"]


class NotificationCreate(BaseModel):
    """Server-side action alerting a user."""
    user_id: int = Field(..., description="Recipient user ID")
    type: NotificationType
    title: str = Field(..., max_length=255)
    message: str
    data: Optional[dict[str, Any]] = Field(None, description="Structured payload for the UI")
    action_url: Optional[str] = Field(None, max_length=500)
    action_text: Optional[str] = Field(None, max_length=100)


class NotificationRead(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]]
    action_url: Optional[str]
    action_text: Optional[str]
    read_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NotificationPage(BaseModel):
    meta: PageMeta
    data: list[NotificationRead]
