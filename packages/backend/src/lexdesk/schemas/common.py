"""Schemas shared by every paginated listing."""

from pydantic import BaseModel


class PageMeta(BaseModel):
    total: int
    per_page: int
    current_page: int
    last_page: int
    first_page: int = 1


class CountRead(BaseModel):
    count: int


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. {"message": "All notifications marked as read"}."""
    message: str
