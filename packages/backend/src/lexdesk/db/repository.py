"""Repository helpers — timestamps, soft deletes, pagination.

Learn: Every write path stamps its own timestamps through these functions and
every read of a soft-deletable table goes through active(). Nothing here
relies on ORM lifecycle hooks, so the behaviour is visible at the call site.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.db.models import utcnow


def stamp_created(obj, now: Optional[datetime] = None):
    """Set created_at (and updated_at when the table has one)."""
    now = now or utcnow()
    obj.created_at = now
    if hasattr(obj, "updated_at"):
        obj.updated_at = now
    return obj


def stamp_updated(obj, now: Optional[datetime] = None):
    obj.updated_at = now or utcnow()
    return obj


def active(query: Select, model) -> Select:
    """Restrict a query to rows that are not soft-deleted."""
    return query.where(model.deleted.is_(False))


def soft_delete(obj, now: Optional[datetime] = None):
    obj.deleted = True
    return stamp_updated(obj, now)


@dataclass
class Page:
    """One page of results plus the numbers a paginator UI needs."""

    items: list[Any]
    total: int
    page: int
    per_page: int
    meta: dict = field(init=False)

    def __post_init__(self):
        last_page = max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1
        self.meta = {
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.page,
            "last_page": last_page,
            "first_page": 1,
        }


async def paginate(
    db: AsyncSession,
    query: Select,
    *,
    page: int = 1,
    per_page: int = 10,
    options: Sequence = (),
) -> Page:
    """Run `query` for one page and count the full result set.

    Loader `options` apply to the page query only, not the count.
    """
    page = max(1, page)
    count_q = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_q)).scalar_one()

    result = await db.execute(query.options(*options).offset((page - 1) * per_page).limit(per_page))
    return Page(
        items=list(result.scalars().all()),
        total=total,
        page=page,
        per_page=per_page,
    )
