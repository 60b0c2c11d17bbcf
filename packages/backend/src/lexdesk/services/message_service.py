"""Message ledger — user-to-user (or system-to-user) direct messages.

`user_id` is the recipient and the owner for read-state purposes.
The sender is eager-loaded because listings show who wrote each message.
"""

from typing import Any, Optional

from sqlalchemy.orm import selectinload

from lexdesk.db.filters import Equals, IsNull
from lexdesk.db.models import MESSAGE_PRIORITIES, Message, User
from lexdesk.db.repository import Page, stamp_created
from lexdesk.errors import NotFoundError, ValidationFailed
from lexdesk.services.read_state import ReadStateLedger

SYSTEM_SENDER = "System"


class MessageNotFoundError(NotFoundError):
    message = "Message not found"


def _check_priority(priority: str) -> str:
    if priority not in MESSAGE_PRIORITIES:
        raise ValidationFailed(
            f"Invalid priority '{priority}'. Valid: {', '.join(MESSAGE_PRIORITIES)}"
        )
    return priority


def summarize(message: Message) -> dict:
    """Compact shape used by the header dropdown."""
    return {
        "id": message.id,
        "from": message.sender.full_name if message.sender else SYSTEM_SENDER,
        "subject": message.subject,
        "message": message.body,
        "time": message.created_at,
        "isRead": message.read_at is not None,
        "priority": message.priority,
    }


class MessageService(ReadStateLedger):
    model = Message
    not_found_error = MessageNotFoundError
    load_options = (selectinload(Message.sender),)

    async def get_messages(
        self,
        user_id: int,
        *,
        page: int = 1,
        limit: int = 10,
        priority: Optional[str] = None,
        unread_only: bool = False,
    ) -> Page:
        predicates = []
        if priority:
            predicates.append(Equals("priority", _check_priority(priority)))
        if unread_only:
            predicates.append(IsNull("read_at"))
        return await self.list_for_user(user_id, page=page, limit=limit, predicates=predicates)

    async def get_recent_summaries(self, user_id: int, limit: int = 5) -> list[dict]:
        return [summarize(m) for m in await self.get_recent(user_id, limit)]

    async def create_message(
        self,
        *,
        user_id: int,
        subject: str,
        body: str,
        sender_id: Optional[int] = None,
        priority: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Message:
        if await self.db.get(User, user_id) is None:
            raise ValidationFailed("Recipient does not exist")

        message = Message(
            user_id=user_id,
            sender_id=sender_id,
            subject=subject,
            body=body,
            priority=_check_priority(priority or "normal"),
            meta=metadata or None,
        )
        stamp_created(message)
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message, attribute_names=["sender"])
        return message
