"""Notification ledger — system alerts addressed to one user."""

from typing import Any, Optional

from lexdesk.db.filters import Equals, IsNull
from lexdesk.db.models import NOTIFICATION_TYPES, Notification, User
from lexdesk.db.repository import Page, stamp_created
from lexdesk.errors import NotFoundError, ValidationFailed
from lexdesk.services.read_state import ReadStateLedger


class NotificationNotFoundError(NotFoundError):
    message = "Notification not found"


def _check_type(type: str) -> str:
    if type not in NOTIFICATION_TYPES:
        raise ValidationFailed(
            f"Invalid notification type '{type}'. Valid: {', '.join(NOTIFICATION_TYPES)}"
        )
    return type


class NotificationService(ReadStateLedger):
    model = Notification
    not_found_error = NotificationNotFoundError

    async def get_notifications(
        self,
        user_id: int,
        *,
        page: int = 1,
        limit: int = 10,
        type: Optional[str] = None,
        unread_only: bool = False,
    ) -> Page:
        predicates = []
        if type:
            predicates.append(Equals("type", _check_type(type)))
        if unread_only:
            predicates.append(IsNull("read_at"))
        return await self.list_for_user(user_id, page=page, limit=limit, predicates=predicates)

    async def get_notifications_by_type(self, user_id: int, type: str) -> list[Notification]:
        """Every notification of one type, newest first (no pagination)."""
        q = self._newest_first(
            self._owned(user_id).where(Notification.type == _check_type(type))
        )
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def create_notification(
        self,
        *,
        user_id: int,
        type: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
        action_url: Optional[str] = None,
        action_text: Optional[str] = None,
    ) -> Notification:
        if await self.db.get(User, user_id) is None:
            raise ValidationFailed("Recipient does not exist")

        notification = Notification(
            user_id=user_id,
            type=_check_type(type),
            title=title,
            message=message,
            data=data or None,
            action_url=action_url or None,
            action_text=action_text or None,
        )
        stamp_created(notification)
        self.db.add(notification)
        await self.db.commit()
        return notification
