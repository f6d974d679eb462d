"""Pydantic schemas for drag-and-drop moves."""
from typing import Literal

from pydantic import BaseModel, Field


class MoveRequest(BaseModel):
    """A dragged item and the location it was dropped on."""

    source_type: Literal["bookmark", "folder"]
    source_id: str = Field(..., min_length=1)
    target: str = Field(
        ...,
        min_length=1,
        description="Drop target: 'all', 'favorites', 'recent', 'trash', 'tags' "
                    "or 'folder:<id>'",
    )


class MoveResponse(BaseModel):
    """Outcome of a drop; applied is false for no-ops and rejected drops."""

    applied: bool
    warning: str | None = None
