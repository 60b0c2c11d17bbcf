"""Notifications API — the current user's alert inbox.

Routes:
- GET /notifications → paginated list (filters: type, unread_only)
- GET /notifications/recent → newest N for the bell dropdown
- GET /notifications/unread-count → badge number
- GET /notifications/type/:type → all of one type
- GET /notifications/:id → one notification
- POST /notifications → create (and push to the recipient's sockets)
- PUT /notifications/:id/read → mark one read
- PUT /notifications/read-all → mark all read
- DELETE /notifications/:id → delete one
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.auth.dependencies import CurrentIdentity, get_current_user
from lexdesk.config import settings
from lexdesk.db.engine import get_db
from lexdesk.errors import ValidationFailed
from lexdesk.events.types import NOTIFICATION_CREATED
from lexdesk.realtime.service import RealtimeService, get_realtime
from lexdesk.schemas.common import CountRead, MessageResponse
from lexdesk.schemas.notification import (
    NotificationCreate,
    NotificationPage,
    NotificationRead,
    NotificationType,
)
from lexdesk.services.notification_service import (
    NotificationNotFoundError,
    NotificationService,
)

router = APIRouter(prefix="/notifications")


def _get_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


# ─── Listing ─────────────────────────────────────────────


@router.get("", response_model=NotificationPage)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    type: Optional[NotificationType] = Query(None, description="Filter by notification type"),
    unread_only: bool = Query(False),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    """The user's notifications, newest first."""
    result = await svc.get_notifications(
        identity.user_id, page=page, limit=limit, type=type, unread_only=unread_only
    )
    return {"meta": result.meta, "data": result.items}


@router.get("/recent", response_model=list[NotificationRead])
async def recent_notifications(
    limit: int = Query(settings.default_recent_limit, ge=1, le=settings.max_recent_limit),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    return await svc.get_recent(identity.user_id, limit)


@router.get("/unread-count", response_model=CountRead)
async def unread_count(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    return {"count": await svc.get_unread_count(identity.user_id)}


@router.get("/type/{type}", response_model=list[NotificationRead])
async def notifications_by_type(
    type: NotificationType,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    return await svc.get_notifications_by_type(identity.user_id, type)


@router.get("/{notification_id}", response_model=NotificationRead)
async def get_notification(
    notification_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    try:
        return await svc.get(notification_id, identity.user_id)
    except NotificationNotFoundError:
        raise HTTPException(status_code=404, detail="Notification not found")


# ─── Create ──────────────────────────────────────────────


@router.post("", response_model=NotificationRead, status_code=201)
async def create_notification(
    body: NotificationCreate,
    svc: NotificationService = Depends(_get_service),
    realtime: RealtimeService = Depends(get_realtime),
):
    """Create a notification and push it to the recipient's open sockets."""
    try:
        notification = await svc.create_notification(**body.model_dump())
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.message)

    await realtime.notify_user(
        notification.user_id,
        NOTIFICATION_CREATED,
        NotificationRead.model_validate(notification).model_dump(mode="json"),
    )
    return notification


# ─── Read-state ──────────────────────────────────────────


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    await svc.mark_all_as_read(identity.user_id)
    return {"message": "All notifications marked as read"}


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_as_read(
    notification_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    try:
        return await svc.mark_as_read(notification_id, identity.user_id)
    except NotificationNotFoundError:
        raise HTTPException(status_code=404, detail="Notification not found")


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: NotificationService = Depends(_get_service),
):
    try:
        await svc.delete(notification_id, identity.user_id)
    except NotificationNotFoundError:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification deleted successfully"}
