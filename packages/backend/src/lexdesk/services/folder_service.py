"""Folder service — the case folders users favorite and watch.

Folders are soft-deleted: every read goes through repository.active(),
so a deleted folder is NotFound everywhere (including favorites).
"""

from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.db.filters import Predicate, apply_predicates
from lexdesk.db.models import Folder
from lexdesk.db.repository import Page, active, paginate, soft_delete, stamp_created, stamp_updated
from lexdesk.errors import NotFoundError

UPDATABLE_FIELDS = ("code", "title", "status", "client_name", "meta")


class FolderNotFoundError(NotFoundError):
    message = "Folder not found"


class FolderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_folder(
        self,
        *,
        title: str,
        code: Optional[str] = None,
        status: str = "active",
        client_name: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Folder:
        folder = Folder(
            title=title,
            code=code,
            status=status,
            client_name=client_name,
            meta=metadata or None,
            deleted=False,
        )
        stamp_created(folder)
        self.db.add(folder)
        await self.db.commit()
        return folder

    async def list_folders(
        self,
        *,
        predicates: Optional[Sequence[Predicate]] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        q = apply_predicates(active(select(Folder), Folder), Folder, predicates)
        q = q.order_by(Folder.updated_at.desc(), Folder.id.desc())
        return await paginate(self.db, q, page=page, per_page=limit)

    async def get_folder(self, folder_id: int) -> Folder:
        q = active(select(Folder), Folder).where(Folder.id == folder_id)
        folder = (await self.db.execute(q)).scalars().first()
        if folder is None:
            raise FolderNotFoundError()
        return folder

    async def existing_ids(self, folder_ids: Sequence[int]) -> set[int]:
        """Which of `folder_ids` name live folders."""
        if not folder_ids:
            return set()
        q = active(select(Folder.id), Folder).where(Folder.id.in_(list(folder_ids)))
        return set((await self.db.execute(q)).scalars().all())

    async def update_folder(self, folder_id: int, changes: dict[str, Any]) -> Folder:
        """Apply a partial update. Unknown keys are ignored."""
        folder = await self.get_folder(folder_id)
        for key, value in changes.items():
            if key in UPDATABLE_FIELDS:
                setattr(folder, key, value)
        stamp_updated(folder)
        await self.db.commit()
        return folder

    async def delete_folder(self, folder_id: int) -> None:
        folder = await self.get_folder(folder_id)
        soft_delete(folder)
        await self.db.commit()
