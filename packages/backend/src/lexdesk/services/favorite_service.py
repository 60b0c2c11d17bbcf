"""Favorites ledger — which folders each user has starred.

Learn: One row per (user, folder), enforced by a unique constraint. Single
toggles are two statements and rely on that constraint under races;
bulk toggles run in one transaction:

    existing = favorites ∩ requested
    remove existing, add requested − existing, commit — or roll back both

so a failure halfway never leaves the user with half a toggle applied.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.db.models import Folder, FolderFavorite, utcnow
from lexdesk.db.repository import active, stamp_created
from lexdesk.errors import ValidationFailed
from lexdesk.services.folder_service import FolderService

logger = structlog.get_logger()


@dataclass
class ToggleResult:
    action: str  # "added" | "removed"
    is_favorite: bool


@dataclass
class BulkToggleResult:
    added: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)


class FolderFavoriteService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.folders = FolderService(db)

    async def _find(self, user_id: int, folder_id: int) -> Optional[FolderFavorite]:
        q = select(FolderFavorite).where(
            FolderFavorite.user_id == user_id,
            FolderFavorite.folder_id == folder_id,
        )
        return (await self.db.execute(q)).scalars().first()

    # ─── Reads ────────────────────────────────────────────

    async def get_favorite_folders(self, user_id: int) -> list[Folder]:
        """The user's favorite folders, most recently starred first."""
        q = (
            select(Folder)
            .join(FolderFavorite, FolderFavorite.folder_id == Folder.id)
            .where(FolderFavorite.user_id == user_id)
            .order_by(FolderFavorite.created_at.desc(), FolderFavorite.id.desc())
        )
        result = await self.db.execute(active(q, Folder))
        return list(result.scalars().all())

    async def get_favorite_folder_ids(self, user_id: int) -> list[int]:
        q = select(FolderFavorite.folder_id).where(FolderFavorite.user_id == user_id)
        return list((await self.db.execute(q)).scalars().all())

    async def is_favorite(self, user_id: int, folder_id: int) -> bool:
        return await self._find(user_id, folder_id) is not None

    # ─── Single-folder writes ─────────────────────────────

    async def toggle_favorite(self, user_id: int, folder_id: int) -> ToggleResult:
        await self.folders.get_folder(folder_id)

        existing = await self._find(user_id, folder_id)
        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
            return ToggleResult(action="removed", is_favorite=False)

        await self.add_favorite(user_id, folder_id)
        return ToggleResult(action="added", is_favorite=True)

    async def add_favorite(self, user_id: int, folder_id: int) -> FolderFavorite:
        """Idempotent: returns the existing row when already starred."""
        await self.folders.get_folder(folder_id)

        existing = await self._find(user_id, folder_id)
        if existing is not None:
            return existing

        favorite = stamp_created(FolderFavorite(user_id=user_id, folder_id=folder_id))
        self.db.add(favorite)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent request starred it first.
            await self.db.rollback()
            existing = await self._find(user_id, folder_id)
            if existing is None:
                raise
            return existing
        return favorite

    async def remove_favorite(self, user_id: int, folder_id: int) -> bool:
        """Idempotent: returns False when there was nothing to remove."""
        existing = await self._find(user_id, folder_id)
        if existing is None:
            return False
        await self.db.delete(existing)
        await self.db.commit()
        return True

    # ─── Bulk toggle ──────────────────────────────────────

    async def _existing_favorite_ids(self, user_id: int, folder_ids: Sequence[int]) -> set[int]:
        q = select(FolderFavorite.folder_id).where(
            FolderFavorite.user_id == user_id,
            FolderFavorite.folder_id.in_(list(folder_ids)),
        )
        return set((await self.db.execute(q)).scalars().all())

    async def _delete_favorites(self, user_id: int, folder_ids: Sequence[int]) -> None:
        await self.db.execute(
            delete(FolderFavorite).where(
                FolderFavorite.user_id == user_id,
                FolderFavorite.folder_id.in_(list(folder_ids)),
            )
        )

    async def _insert_favorites(self, user_id: int, folder_ids: Sequence[int]) -> None:
        now = utcnow()
        self.db.add_all([
            stamp_created(FolderFavorite(user_id=user_id, folder_id=fid), now)
            for fid in folder_ids
        ])
        await self.db.flush()

    async def bulk_toggle_favorites(self, user_id: int, folder_ids: Sequence[int]) -> BulkToggleResult:
        """Flip every requested folder: starred ones are removed, the rest added."""
        requested = list(dict.fromkeys(folder_ids))
        if not requested:
            return BulkToggleResult()

        # Starred folders can always be removed, even after a soft delete
        existing = await self._existing_favorite_ids(user_id, requested)
        missing = set(requested) - existing - await self.folders.existing_ids(requested)
        if missing:
            raise ValidationFailed(
                f"Unknown folder ids: {', '.join(str(i) for i in sorted(missing))}"
            )

        try:
            to_remove = [fid for fid in requested if fid in existing]
            to_add = [fid for fid in requested if fid not in existing]

            if to_remove:
                await self._delete_favorites(user_id, to_remove)
            if to_add:
                await self._insert_favorites(user_id, to_add)

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "favorites.bulk_toggled",
            user_id=user_id,
            added=len(to_add),
            removed=len(to_remove),
        )
        return BulkToggleResult(added=to_add, removed=to_remove)
