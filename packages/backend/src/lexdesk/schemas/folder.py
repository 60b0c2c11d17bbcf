"""Pydantic schemas for folders and favorites.

The favorites endpoints keep the camelCase contract the frontend
already speaks: {"folderIds": [...]} in, {"action", "isFavorite"} out.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from lexdesk.schemas.common import PageMeta


class FolderCreate(BaseModel):
    title: str = Field(..., max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    status: str = Field("active", max_length=30)
    client_name: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, Any]] = None


class FolderUpdate(BaseModel):
    """Partial update — only provided fields change."""
    title: Optional[str] = Field(None, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    status: Optional[str] = Field(None, max_length=30)
    client_name: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, Any]] = None


class FolderRead(BaseModel):
    id: int
    code: Optional[str]
    title: str
    status: str
    client_name: Optional[str]
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="meta")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FolderPage(BaseModel):
    meta: PageMeta
    data: list[FolderRead]


class FavoriteToggleRead(BaseModel):
    action: Literal["added", "removed"]
    is_favorite: bool = Field(..., serialization_alias="isFavorite")

    model_config = ConfigDict(from_attributes=True)


class FavoriteCheckRead(BaseModel):
    is_favorite: bool = Field(..., serialization_alias="isFavorite")


class BulkFavoriteRequest(BaseModel):
    folder_ids: list[int] = Field(..., alias="folderIds")

    model_config = ConfigDict(populate_by_name=True)


class BulkFavoriteRead(BaseModel):
    added: list[int]
    removed: list[int]

    model_config = {"from_attributes": True}
