"""Pydantic schemas for snapshot and filtered view endpoints."""
from pydantic import BaseModel

from schemas.bookmark import BookmarkResponse
from schemas.folder import FolderResponse


class SnapshotResponse(BaseModel):
    """A complete, consistent copy of the user's bookmarks and folders."""

    bookmarks: list[BookmarkResponse]
    folders: list[FolderResponse]


class ViewResponse(BaseModel):
    """Bookmarks visible at a location, in snapshot order."""

    location: str
    items: list[BookmarkResponse]
    total: int
