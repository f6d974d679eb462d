"""Pydantic schemas for folder endpoints."""
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class CascadePolicy(StrEnum):
    """What happens to the bookmarks of a folder that is being deleted."""

    TRASH = "trash"
    ROOT = "root"
    DELETE = "delete"


class FolderCreate(BaseModel):
    """Schema for creating a folder (root level when parent_id is null)."""

    name: str = Field(..., max_length=255)
    parent_id: str | None = None


class FolderUpdate(BaseModel):
    """
    Schema for renaming and/or reparenting a folder.

    Only fields present in the request are applied; an explicit null
    parent_id moves the folder to the root.
    """

    name: str | None = Field(default=None, max_length=255)
    parent_id: str | None = None


class FolderResponse(BaseModel):
    """Schema for folder responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    parent_id: str | None
    created_at: datetime | None
    updated_at: datetime | None


class FolderTreeNode(BaseModel):
    """A folder with its nested children."""

    id: str
    name: str
    parent_id: str | None
    children: list["FolderTreeNode"] = []


class FolderUpdateResponse(BaseModel):
    """Result of a folder update; warning is set when a reparent was rejected."""

    folder: FolderResponse
    warning: str | None = None


class FolderDeleteResponse(BaseModel):
    """Result of a folder deletion."""

    folder_id: str
    policy: CascadePolicy | None
    bookmark_count: int
    promoted_folder_ids: list[str]
    next_location: str
