"""
Derivation of the visible bookmark list for a location.

Pure functions over a Snapshot: pick the base predicate for the location,
narrow by the search term, and keep snapshot order.
"""
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from services.exceptions import ValidationError
from services.snapshot_service import BookmarkRecord, Snapshot

FOLDER_PREFIX = "folder:"
TAG_PREFIX = "tag:"


class StaticView(StrEnum):
    """Fixed, non user-created locations."""

    ALL = "all"
    FAVORITES = "favorites"
    RECENT = "recent"
    TRASH = "trash"
    TAGS = "tags"


class RecentWindow(StrEnum):
    """Timeframes offered by the Recent view."""

    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def delta(self) -> timedelta:
        """Length of the window."""
        return {
            RecentWindow.DAY: timedelta(days=1),
            RecentWindow.WEEK: timedelta(days=7),
            RecentWindow.MONTH: timedelta(days=30),
        }[self]


@dataclass(frozen=True)
class StaticLocation:
    view: StaticView

    def __str__(self) -> str:
        return self.view.value


@dataclass(frozen=True)
class FolderLocation:
    folder_id: str

    def __str__(self) -> str:
        return f"{FOLDER_PREFIX}{self.folder_id}"


@dataclass(frozen=True)
class TagLocation:
    tag: str

    def __str__(self) -> str:
        return f"{TAG_PREFIX}{self.tag}"


Location = StaticLocation | FolderLocation | TagLocation

ALL_BOOKMARKS = StaticLocation(StaticView.ALL)


def parse_location(value: str) -> Location:
    """
    Parse 'all', 'favorites', 'recent', 'trash', 'tags', 'folder:<id>' or 'tag:<name>'.

    Raises:
        ValidationError: If the string names no location.
    """
    raw = value.strip()
    if raw.startswith(FOLDER_PREFIX):
        folder_id = raw[len(FOLDER_PREFIX):].strip()
        if folder_id:
            return FolderLocation(folder_id)
    elif raw.startswith(TAG_PREFIX):
        tag = raw[len(TAG_PREFIX):].strip()
        if tag:
            return TagLocation(tag)
    else:
        try:
            return StaticLocation(StaticView(raw.lower()))
        except ValueError:
            pass
    raise ValidationError(f"Unknown location: '{value}'")


def matches_search(bookmark: BookmarkRecord, term: str) -> bool:
    """Case-insensitive substring match over title, url, text, notes and tags."""
    needle = term.lower()
    fields = (bookmark.title, bookmark.url, bookmark.text_content, bookmark.notes)
    if any(value and needle in value.lower() for value in fields):
        return True
    return any(needle in tag.lower() for tag in bookmark.tags)


def _base_predicate(
    location: Location,
    window: RecentWindow,
    now: datetime,
) -> Callable[[BookmarkRecord], bool] | None:
    if isinstance(location, FolderLocation):
        return lambda b: b.folder_id == location.folder_id and not b.is_trashed
    if isinstance(location, TagLocation):
        return lambda b: location.tag in b.tags and not b.is_trashed
    if not isinstance(location, StaticLocation):
        return None

    if location.view == StaticView.ALL:
        return lambda b: not b.is_trashed
    if location.view == StaticView.FAVORITES:
        return lambda b: b.is_favorite and not b.is_trashed
    if location.view == StaticView.RECENT:
        cutoff = now - window.delta
        return lambda b: (
            not b.is_trashed and b.created_at is not None and b.created_at >= cutoff
        )
    if location.view == StaticView.TRASH:
        return lambda b: b.is_trashed
    # The Tags root is a placeholder, not a list
    return None


def filter_bookmarks(
    snapshot: Snapshot,
    location: Location,
    search: str | None = None,
    window: RecentWindow = RecentWindow.DAY,
    now: datetime | None = None,
) -> list[BookmarkRecord]:
    """
    Bookmarks visible at location, optionally narrowed by a search term.

    Args:
        snapshot: The user's current snapshot.
        location: Static view, folder or tag.
        search: Free text; ignored when blank after trimming.
        window: Timeframe for the Recent view (boundary inclusive).
        now: Reference time for the Recent view; defaults to the current time.

    Returns:
        Matching bookmarks in snapshot order (newest first).
    """
    predicate = _base_predicate(location, window, now or datetime.now(UTC))
    if predicate is None:
        return []

    visible = [b for b in snapshot.bookmarks if predicate(b)]

    term = (search or "").strip()
    if term:
        visible = [b for b in visible if matches_search(b, term)]
    return visible


def location_after_folder_delete(active: Location | None, deleted_folder_id: str) -> Location:
    """The location to show after a folder deletion: All Bookmarks if the active folder went."""
    if active is None or active == FolderLocation(deleted_folder_id):
        return ALL_BOOKMARKS
    return active
