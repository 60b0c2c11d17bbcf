"""Messages API — the current user's direct-message inbox.

Same shape as the notifications API, plus:
- POST /messages → send (sender = current user) and push to the recipient
- GET /messages/recent → compact summaries {id, from, subject, ...}
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.auth.dependencies import CurrentIdentity, get_current_user
from lexdesk.config import settings
from lexdesk.db.engine import get_db
from lexdesk.errors import ValidationFailed
from lexdesk.events.types import MESSAGE_RECEIVED
from lexdesk.realtime.service import RealtimeService, get_realtime
from lexdesk.schemas.common import CountRead, MessageResponse
from lexdesk.schemas.message import (
    MessageCreate,
    MessagePage,
    MessageRead,
    MessageSummary,
    Priority,
)
from lexdesk.services.message_service import (
    MessageNotFoundError,
    MessageService,
    summarize,
)

router = APIRouter(prefix="/messages")


def _get_service(db: AsyncSession = Depends(get_db)) -> MessageService:
    return MessageService(db)


@router.get("", response_model=MessagePage)
async def list_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    priority: Optional[Priority] = Query(None, description="Filter by priority"),
    unread_only: bool = Query(False),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    """The user's received messages, newest first."""
    result = await svc.get_messages(
        identity.user_id, page=page, limit=limit, priority=priority, unread_only=unread_only
    )
    return {"meta": result.meta, "data": result.items}


@router.get("/recent", response_model=list[MessageSummary])
async def recent_messages(
    limit: int = Query(settings.default_recent_limit, ge=1, le=settings.max_recent_limit),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    return await svc.get_recent_summaries(identity.user_id, limit)


@router.get("/unread-count", response_model=CountRead)
async def unread_count(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    return {"count": await svc.get_unread_count(identity.user_id)}


@router.get("/{message_id}", response_model=MessageRead)
async def get_message(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    try:
        return await svc.get(message_id, identity.user_id)
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")


@router.post("", response_model=MessageRead, status_code=201)
async def send_message(
    body: MessageCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
    realtime: RealtimeService = Depends(get_realtime),
):
    try:
        message = await svc.create_message(
            user_id=body.user_id,
            sender_id=identity.user_id,
            subject=body.subject,
            body=body.body,
            priority=body.priority,
            metadata=body.metadata,
        )
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.message)

    await realtime.notify_user(
        message.user_id,
        MESSAGE_RECEIVED,
        MessageSummary.model_validate(summarize(message)).model_dump(mode="json", by_alias=True),
    )
    return message


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    await svc.mark_all_as_read(identity.user_id)
    return {"message": "All messages marked as read"}


@router.put("/{message_id}/read", response_model=MessageRead)
async def mark_as_read(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    try:
        return await svc.mark_as_read(message_id, identity.user_id)
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(_get_service),
):
    try:
        await svc.delete(message_id, identity.user_id)
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    return {"message": "Message deleted successfully"}
