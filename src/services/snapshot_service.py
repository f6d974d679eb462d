"""
Snapshot of one user's bookmarks and folders.

A Snapshot is an immutable, internally consistent copy of both collections:
bookmarks newest first, folders oldest first. Folders are kept as an arena
keyed by id with a parent -> children index rebuilt on every load, so tree
walks never follow object pointers and a corrupt parent chain cannot loop
forever. Derived data (tag set, folder tree) is computed from the snapshot on
demand.
"""
from collections import Counter
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from core.change_feed import SnapshotLoader
from models.bookmark import Bookmark, BookmarkType
from models.folder import Folder
from schemas.validators import normalize_timestamp


@dataclass(frozen=True)
class BookmarkRecord:
    """Read-only view of a bookmark inside a snapshot."""

    id: str
    type: BookmarkType
    title: str | None = None
    url: str | None = None
    text_content: str | None = None
    notes: str | None = None
    tags: tuple[str, ...] = ()
    is_favorite: bool = False
    folder_id: str | None = None
    is_trashed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class FolderRecord:
    """Read-only view of a folder inside a snapshot."""

    id: str
    name: str
    parent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of a user's data with folder lookup indexes."""

    bookmarks: tuple[BookmarkRecord, ...] = ()
    folders: tuple[FolderRecord, ...] = ()
    _folders_by_id: Mapping[str, FolderRecord] = field(
        init=False, repr=False, compare=False,
    )
    _children: Mapping[str | None, tuple[str, ...]] = field(
        init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        folders_by_id = {folder.id: folder for folder in self.folders}
        children: dict[str | None, list[str]] = {}
        for folder in self.folders:
            children.setdefault(folder.parent_id, []).append(folder.id)
        object.__setattr__(self, "_folders_by_id", MappingProxyType(folders_by_id))
        object.__setattr__(
            self,
            "_children",
            MappingProxyType({key: tuple(ids) for key, ids in children.items()}),
        )

    def folder(self, folder_id: str) -> FolderRecord | None:
        """Look up a folder by id."""
        return self._folders_by_id.get(folder_id)

    def bookmark(self, bookmark_id: str) -> BookmarkRecord | None:
        """Look up a bookmark by id."""
        for bookmark in self.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def children_of(self, parent_id: str | None) -> list[FolderRecord]:
        """Direct children of a folder (or root-level folders for None), oldest first."""
        return [self._folders_by_id[child] for child in self._children.get(parent_id, ())]

    def ancestors(self, folder_id: str) -> Iterator[str]:
        """
        Yield the ids of folder_id's ancestors, nearest first.

        The walk stops at the root, at a dangling parent reference, or after
        as many steps as there are folders.
        """
        current = self._folders_by_id.get(folder_id)
        for _ in range(len(self.folders)):
            if current is None or current.parent_id is None:
                return
            yield current.parent_id
            current = self._folders_by_id.get(current.parent_id)

    def is_same_or_descendant(self, folder_id: str, ancestor_id: str) -> bool:
        """True if folder_id is ancestor_id itself or lies anywhere beneath it."""
        if folder_id == ancestor_id:
            return True
        return ancestor_id in self.ancestors(folder_id)

    def bookmarks_in_folder(self, folder_id: str) -> list[BookmarkRecord]:
        """Bookmarks whose folder_id points at folder_id, in snapshot order."""
        return [b for b in self.bookmarks if b.folder_id == folder_id]

    def tag_set(self) -> list[str]:
        """
        Every tag used by any bookmark, trashed ones included.

        Sorted case-insensitively for display.
        """
        names = {tag for bookmark in self.bookmarks for tag in bookmark.tags}
        return sorted(names, key=lambda name: (name.lower(), name))

    def tag_counts(self) -> dict[str, int]:
        """Number of non-trashed bookmarks per tag, for every tag in the tag set."""
        counts = Counter(
            tag
            for bookmark in self.bookmarks
            if not bookmark.is_trashed
            for tag in bookmark.tags
        )
        return {name: counts.get(name, 0) for name in self.tag_set()}


EMPTY_SNAPSHOT = Snapshot()


def bookmark_to_record(bookmark: Bookmark) -> BookmarkRecord:
    """Copy an ORM bookmark (with tag_objects loaded) into a snapshot record."""
    return BookmarkRecord(
        id=bookmark.id,
        type=BookmarkType(bookmark.type),
        title=bookmark.title,
        url=bookmark.url,
        text_content=bookmark.text_content,
        notes=bookmark.notes,
        tags=tuple(bookmark.tags),
        is_favorite=bool(bookmark.is_favorite),
        folder_id=bookmark.folder_id,
        is_trashed=bool(bookmark.is_trashed),
        created_at=normalize_timestamp(bookmark.created_at),
        updated_at=normalize_timestamp(bookmark.updated_at),
    )


def folder_to_record(folder: Folder) -> FolderRecord:
    """Copy an ORM folder into a snapshot record."""
    return FolderRecord(
        id=folder.id,
        name=folder.name,
        parent_id=folder.parent_id,
        created_at=normalize_timestamp(folder.created_at),
        updated_at=normalize_timestamp(folder.updated_at),
    )


async def load_snapshot(db: AsyncSession, user_id: str) -> Snapshot:
    """
    Read both collections for a user and build a snapshot.

    Bookmarks are ordered by created_at descending, folders by created_at
    ascending; ids break ties so the order is deterministic.
    """
    bookmark_result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc()),
    )
    folder_result = await db.execute(
        select(Folder)
        .where(Folder.user_id == user_id)
        .order_by(Folder.created_at.asc(), Folder.id.asc()),
    )
    return Snapshot(
        bookmarks=tuple(bookmark_to_record(b) for b in bookmark_result.scalars()),
        folders=tuple(folder_to_record(f) for f in folder_result.scalars()),
    )


def make_snapshot_loader(session_factory: async_sessionmaker) -> SnapshotLoader:
    """Build a change-feed loader that reads each snapshot in its own session."""

    async def _load(user_id: str) -> Snapshot:
        async with session_factory() as session:
            return await load_snapshot(session, user_id)

    return _load
