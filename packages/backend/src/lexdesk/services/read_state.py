"""Read-state ledger — per-user inbox rows with a nullable `read_at`.

Learn: Notifications and messages share the same lifecycle: created by some
server-side action, listed newest-first, flipped to read one at a time or
all at once, deleted by their owner. This base class holds that logic;
subclasses pick the model and add their own create/filter helpers.

Ownership: every lookup filters on user_id. Another user's row is
indistinguishable from a missing one (NotFound, never Forbidden).

The ledger does not push anything over WebSockets. Callers that want
real-time delivery go through RealtimeService themselves.
"""

from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.db.filters import Predicate, apply_predicates
from lexdesk.db.models import utcnow
from lexdesk.db.repository import Page, paginate
from lexdesk.errors import NotFoundError


class ReadStateLedger:
    model = None
    not_found_error: type[NotFoundError] = NotFoundError
    load_options: Sequence = ()

    def __init__(self, db: AsyncSession):
        self.db = db

    def _owned(self, user_id: int):
        return select(self.model).where(self.model.user_id == user_id)

    def _newest_first(self, query):
        return query.order_by(self.model.created_at.desc(), self.model.id.desc())

    # ─── Reads ────────────────────────────────────────────

    async def list_for_user(
        self,
        user_id: int,
        *,
        page: int = 1,
        limit: int = 10,
        predicates: Optional[Sequence[Predicate]] = None,
    ) -> Page:
        """One page of the user's rows, newest first."""
        q = apply_predicates(self._owned(user_id), self.model, predicates)
        return await paginate(
            self.db,
            self._newest_first(q),
            page=page,
            per_page=limit,
            options=self.load_options,
        )

    async def get_unread_count(self, user_id: int) -> int:
        q = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.user_id == user_id)
            .where(self.model.read_at.is_(None))
        )
        return (await self.db.execute(q)).scalar_one()

    async def get_recent(self, user_id: int, limit: int = 5) -> list:
        q = self._newest_first(self._owned(user_id)).options(*self.load_options).limit(limit)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def get(self, item_id: int, user_id: int):
        """Fetch one of the user's rows or raise the model's NotFound."""
        q = (
            self._owned(user_id)
            .where(self.model.id == item_id)
            .options(*self.load_options)
        )
        result = await self.db.execute(q)
        item = result.scalars().first()
        if item is None:
            raise self.not_found_error()
        return item

    # ─── Read-state transitions ───────────────────────────

    async def mark_as_read(self, item_id: int, user_id: int):
        """Set read_at to now. Marking an already-read row again just moves
        the timestamp forward; only a missing row is an error."""
        item = await self.get(item_id, user_id)
        now = utcnow()
        item.read_at = now
        item.updated_at = now
        await self.db.commit()
        return item

    async def mark_all_as_read(self, user_id: int) -> int:
        """Mark every unread row of the user in one UPDATE. Returns the count."""
        now = utcnow()
        result = await self.db.execute(
            update(self.model)
            .where(self.model.user_id == user_id)
            .where(self.model.read_at.is_(None))
            .values(read_at=now, updated_at=now)
        )
        await self.db.commit()
        return result.rowcount

    async def delete(self, item_id: int, user_id: int) -> None:
        item = await self.get(item_id, user_id)
        await self.db.delete(item)
        await self.db.commit()
