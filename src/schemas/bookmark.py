"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.bookmark import BookmarkType
from schemas.validators import (
    validate_and_normalize_tags,
    validate_notes_length,
    validate_text_content_length,
    validate_title_length,
)


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    Type-specific requirements (url for links, text_content for text) are
    checked by the service so that direct callers get the same error.
    """

    type: BookmarkType = BookmarkType.LINK
    title: str | None = None
    url: str | None = None
    text_content: str | None = None
    notes: str | None = None
    tags: list[str] = []
    is_favorite: bool = False
    folder_id: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("notes")
    @classmethod
    def check_notes_length(cls, v: str | None) -> str | None:
        """Validate notes length."""
        return validate_notes_length(v)

    @field_validator("text_content")
    @classmethod
    def check_text_content_length(cls, v: str | None) -> str | None:
        """Validate text content length."""
        return validate_text_content_length(v)


class BookmarkUpdate(BookmarkCreate):
    """
    Schema for replacing a bookmark's editable fields.

    Updates are full replacements: omitted fields fall back to their defaults
    rather than keeping the stored value.
    """


class TagAddRequest(BaseModel):
    """Schema for adding a single tag to a bookmark."""

    tag: str = Field(..., min_length=1)


class BookmarkResponse(BaseModel):
    """
    Schema for bookmark responses.

    Built from ORM bookmarks (tag_objects must be eagerly loaded) or from
    snapshot records.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    type: BookmarkType
    title: str | None
    url: str | None
    text_content: str | None
    notes: str | None
    tags: list[str]
    is_favorite: bool
    folder_id: str | None
    is_trashed: bool
    created_at: datetime | None
    updated_at: datetime | None


class BookmarkSelection(BaseModel):
    """Schema for bulk operations on a selection of bookmarks."""

    bookmark_ids: list[str] = []


class BulkMoveRequest(BookmarkSelection):
    """Schema for moving a selection into a folder."""

    folder_id: str | None = None


class BulkTagsRequest(BookmarkSelection):
    """Schema for adding staged tags to a selection."""

    tags: list[str] = []

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class BulkResult(BaseModel):
    """Result of a bulk operation; warning is set when nothing was selected."""

    updated: int
    warning: str | None = None


class MetadataRequest(BaseModel):
    """Schema for requesting page metadata before saving a link."""

    url: str = Field(..., min_length=1)


class MetadataResponse(BaseModel):
    """Schema for page metadata used to prefill a new bookmark."""

    url: str
    title: str | None
    thumbnail: str | None
