"""Bookmark model for storing saved links and text snippets."""
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import bookmark_tags

if TYPE_CHECKING:
    from models.tag import Tag
    from models.user import User


class BookmarkType(StrEnum):
    """Kind of saved item."""

    LINK = "link"
    TEXT = "text"


class Bookmark(Base, UUIDv7Mixin, TimestampMixin):
    """
    Bookmark model - a link or a text snippet with notes, tags and placement.

    folder_id is a soft reference: there is no foreign key, so deleting a folder
    never cascades here. Folder deletion decides what happens to members.
    """

    __tablename__ = "bookmarks"
    __table_args__ = (
        Index("ix_bookmarks_user_folder", "user_id", "folder_id"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    type: Mapped[BookmarkType] = mapped_column(
        Enum(BookmarkType, native_enum=False, length=16,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BookmarkType.LINK,
    )
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    text_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_favorite: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    folder_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)
    is_trashed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(), index=True,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    tag_objects: Mapped[list["Tag"]] = relationship(
        secondary=bookmark_tags,
        back_populates="bookmarks",
    )

    @property
    def tags(self) -> list[str]:
        """Tag names; requires tag_objects to be loaded."""
        return [tag.name for tag in self.tag_objects]
