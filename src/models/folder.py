"""Folder model for the user's bookmark hierarchy."""
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class Folder(Base, UUIDv7Mixin, TimestampMixin):
    """
    Folder model - a named node in a per-user tree.

    parent_id is a soft reference to another folder (null means root level).
    The parent graph must stay acyclic; the move engine and import enforce it.
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_user_parent", "user_id", "parent_id"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)

    user: Mapped["User"] = relationship(back_populates="folders")
