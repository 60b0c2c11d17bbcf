"""Folders + favorites API.

Folder routes:
- GET /folders → list (filters: status, client, created_from/created_to)
- POST /folders → create
- GET /folders/:id, PATCH /folders/:id (broadcasts folder:updated),
  DELETE /folders/:id (soft delete)

Favorite routes (scoped to the current user):
- GET /folders/favorites → favorite folders, most recent first
- POST /folders/favorites/bulk {folderIds} → XOR toggle, atomically
- GET /folders/:id/favorite → {isFavorite}
- POST /folders/:id/favorite → add (idempotent)
- DELETE /folders/:id/favorite → remove (idempotent)
- POST /folders/:id/favorite/toggle → {action, isFavorite}
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lexdesk.auth.dependencies import CurrentIdentity, get_current_user
from lexdesk.config import settings
from lexdesk.db.engine import get_db
from lexdesk.db.filters import Contains, Equals, Range
from lexdesk.errors import ValidationFailed
from lexdesk.realtime.service import RealtimeService, get_realtime
from lexdesk.schemas.common import MessageResponse
from lexdesk.schemas.folder import (
    BulkFavoriteRead,
    BulkFavoriteRequest,
    FavoriteCheckRead,
    FavoriteToggleRead,
    FolderCreate,
    FolderPage,
    FolderRead,
    FolderUpdate,
)
from lexdesk.services.favorite_service import FolderFavoriteService
from lexdesk.services.folder_service import FolderNotFoundError, FolderService

router = APIRouter(prefix="/folders")


def _get_folders(db: AsyncSession = Depends(get_db)) -> FolderService:
    return FolderService(db)


def _get_favorites(db: AsyncSession = Depends(get_db)) -> FolderFavoriteService:
    return FolderFavoriteService(db)


# ─── Favorites (static paths first) ──────────────────────


@router.get("/favorites", response_model=list[FolderRead])
async def list_favorites(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: FolderFavoriteService = Depends(_get_favorites),
):
    return await svc.get_favorite_folders(identity.user_id)


@router.post("/favorites/bulk", response_model=BulkFavoriteRead)
async def bulk_toggle_favorites(
    body: BulkFavoriteRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: FolderFavoriteService = Depends(_get_favorites),
):
    try:
        return await svc.bulk_toggle_favorites(identity.user_id, body.folder_ids)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.message)


# ─── Folders ─────────────────────────────────────────────


@router.get("", response_model=FolderPage)
async def list_folders(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: Optional[str] = Query(None),
    client: Optional[str] = Query(None, description="Substring of the client name"),
    created_from: Optional[datetime] = Query(None),
    created_to: Optional[datetime] = Query(None),
    svc: FolderService = Depends(_get_folders),
):
    predicates = []
    if status:
        predicates.append(Equals("status", status))
    if client:
        predicates.append(Contains("client_name", client))
    if created_from or created_to:
        predicates.append(Range("created_at", start=created_from, end=created_to))

    result = await svc.list_folders(predicates=predicates, page=page, limit=limit)
    return {"meta": result.meta, "data": result.items}


@router.post("", response_model=FolderRead, status_code=201)
async def create_folder(
    body: FolderCreate,
    svc: FolderService = Depends(_get_folders),
):
    return await svc.create_folder(**body.model_dump())


@router.get("/{folder_id}", response_model=FolderRead)
async def get_folder(
    folder_id: int,
    svc: FolderService = Depends(_get_folders),
):
    try:
        return await svc.get_folder(folder_id)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")


@router.patch("/{folder_id}", response_model=FolderRead)
async def update_folder(
    folder_id: int,
    body: FolderUpdate,
    svc: FolderService = Depends(_get_folders),
    realtime: RealtimeService = Depends(get_realtime),
):
    """Update a folder and tell everyone watching `folder:<id>`."""
    changes = body.model_dump(exclude_unset=True)
    if "metadata" in changes:
        changes["meta"] = changes.pop("metadata")
    try:
        folder = await svc.update_folder(folder_id, changes)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")

    payload = FolderRead.model_validate(folder).model_dump(mode="json")
    await realtime.broadcast_folder_update(folder.id, payload)
    return folder


@router.delete("/{folder_id}", response_model=MessageResponse)
async def delete_folder(
    folder_id: int,
    svc: FolderService = Depends(_get_folders),
):
    try:
        await svc.delete_folder(folder_id)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"message": "Folder deleted successfully"}


# ─── Per-folder favorite ─────────────────────────────────


@router.get("/{folder_id}/favorite", response_model=FavoriteCheckRead)
async def check_favorite(
    folder_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: FolderFavoriteService = Depends(_get_favorites),
):
    return {"is_favorite": await svc.is_favorite(identity.user_id, folder_id)}


@router.post("/{folder_id}/favorite", response_model=MessageResponse, status_code=201)
async def add_favorite(
    folder_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: FolderFavoriteService = Depends(_get_favorites),
):
    try:
        await svc.add_favorite(identity.user_id, folder_id)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"message": "Folder added to favorites"}


@router.delete("/{folder_id}/favorite", response_model=MessageResponse)
async def remove_favorite(
    folder_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: FolderFavoriteService = Depends(_get_favorites),
):
    await svc.remove_favorite(identity.user_id, folder_id)
    return {"message": "Folder removed from favorites"}


@router.post("/{folder_id}/favorite/toggle", response_model=FavoriteToggleRead)
async def toggle_favorite(
    folder_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: FolderFavoriteService = Depends(_get_favorites),
):
    try:
        return await svc.toggle_favorite(identity.user_id, folder_id)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
