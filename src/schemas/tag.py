"""Pydantic schemas for tag endpoints."""
from pydantic import BaseModel, Field, field_validator

from schemas.validators import validate_and_normalize_tag


class TagCount(BaseModel):
    """Schema for a tag with the number of non-trashed bookmarks using it."""

    name: str
    count: int


class TagListResponse(BaseModel):
    """Schema for the tags list response."""

    tags: list[TagCount]


class TagRenameRequest(BaseModel):
    """Schema for renaming a tag."""

    new_name: str = Field(..., min_length=1)

    @field_validator("new_name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str) -> str:
        """Normalize and validate the new tag name."""
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)


class TagRenameResponse(BaseModel):
    """Schema for a completed tag rename."""

    old_name: str
    new_name: str
    bookmark_count: int
