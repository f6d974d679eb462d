"""
Pydantic schemas for JSON export and import.

The interchange document is {"bookmarks": [...], "folders": [...]} with
camelCase field names and every record carrying its id. Import records are
partial: only the fields present are written, so an upsert merges into the
stored record.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models.bookmark import BookmarkType
from schemas.validators import normalize_timestamp, validate_and_normalize_tags


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ExportBookmark(_CamelModel):
    """A bookmark as written to an export file."""

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


class ExportFolder(_CamelModel):
    """A folder as written to an export file."""

    id: str
    name: str
    parent_id: str | None
    created_at: datetime | None
    updated_at: datetime | None


class ExportDocument(_CamelModel):
    """A full export of one user's data."""

    bookmarks: list[ExportBookmark]
    folders: list[ExportFolder]


class _ImportRecord(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(..., min_length=1)
    created_at: datetime | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def convert_timestamp(cls, v: Any) -> datetime | None:
        """Convert exported timestamp objects to datetimes."""
        return normalize_timestamp(v)


class ImportBookmark(_ImportRecord):
    """A bookmark record from an import file; absent fields are left untouched."""

    type: BookmarkType | None = None
    title: str | None = None
    url: str | None = None
    text_content: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    is_favorite: bool | None = None
    folder_id: str | None = None
    is_trashed: bool | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)


class ImportFolder(_ImportRecord):
    """A folder record from an import file; absent fields are left untouched."""

    name: str | None = None
    parent_id: str | None = None


class ImportDocument(_CamelModel):
    """An import file; both arrays are required."""

    bookmarks: list[ImportBookmark]
    folders: list[ImportFolder]


class ImportResult(BaseModel):
    """Counts of records written by an import."""

    bookmarks_created: int
    bookmarks_updated: int
    folders_created: int
    folders_updated: int
