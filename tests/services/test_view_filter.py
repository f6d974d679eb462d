"""Tests for the view filter: location predicates, search and recent windows."""
from datetime import UTC, datetime, timedelta

import pytest

from models.bookmark import BookmarkType
from services.exceptions import ValidationError
from services.snapshot_service import BookmarkRecord, Snapshot
from services.view_filter import (
    ALL_BOOKMARKS,
    FolderLocation,
    RecentWindow,
    StaticLocation,
    StaticView,
    TagLocation,
    filter_bookmarks,
    location_after_folder_delete,
    parse_location,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _record(id: str, **kwargs: object) -> BookmarkRecord:  # noqa: A002
    kwargs.setdefault("created_at", NOW - timedelta(days=60))
    return BookmarkRecord(id=id, type=BookmarkType.LINK, **kwargs)


@pytest.fixture
def snapshot() -> Snapshot:
    return Snapshot(
        bookmarks=(
            _record("new", title="React hooks guide", tags=("react",),
                    created_at=NOW - timedelta(hours=2)),
            _record("fav", title="Python tips", is_favorite=True, folder_id="f1",
                    created_at=NOW - timedelta(days=3)),
            _record("trashed", title="Old react post", is_trashed=True, tags=("react",),
                    created_at=NOW - timedelta(hours=1)),
            _record("notes", url="https://example.com", notes="Read about REACT later",
                    folder_id="f1"),
            _record("undated", title="No date", created_at=None),
        ),
    )


def _ids(records: list[BookmarkRecord]) -> list[str]:
    return [r.id for r in records]


# =============================================================================
# parse_location Tests
# =============================================================================


def test__parse_location__static_views() -> None:
    assert parse_location("all") == ALL_BOOKMARKS
    assert parse_location(" Trash ") == StaticLocation(StaticView.TRASH)


def test__parse_location__folder_and_tag() -> None:
    assert parse_location("folder:abc") == FolderLocation("abc")
    assert parse_location("tag:Machine Learning") == TagLocation("Machine Learning")


@pytest.mark.parametrize("value", ["", "folder:", "tag:  ", "inbox"])
def test__parse_location__unknown_rejected(value: str) -> None:
    with pytest.raises(ValidationError):
        parse_location(value)


def test__location__str_round_trips() -> None:
    assert str(FolderLocation("abc")) == "folder:abc"
    assert str(TagLocation("x")) == "tag:x"
    assert str(ALL_BOOKMARKS) == "all"


# =============================================================================
# Base predicate Tests
# =============================================================================


def test__filter_bookmarks__all_excludes_trash(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, ALL_BOOKMARKS, now=NOW)
    assert _ids(result) == ["new", "fav", "notes", "undated"]


def test__filter_bookmarks__favorites(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, StaticLocation(StaticView.FAVORITES), now=NOW)
    assert _ids(result) == ["fav"]


def test__filter_bookmarks__trash_only_trashed(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, StaticLocation(StaticView.TRASH), now=NOW)
    assert _ids(result) == ["trashed"]


def test__filter_bookmarks__folder(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, FolderLocation("f1"), now=NOW)
    assert _ids(result) == ["fav", "notes"]


def test__filter_bookmarks__tag_excludes_trash(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, TagLocation("react"), now=NOW)
    assert _ids(result) == ["new"]


def test__filter_bookmarks__tag_match_is_exact(snapshot: Snapshot) -> None:
    assert filter_bookmarks(snapshot, TagLocation("React"), now=NOW) == []


def test__filter_bookmarks__tags_root_is_empty(snapshot: Snapshot) -> None:
    assert filter_bookmarks(snapshot, StaticLocation(StaticView.TAGS), now=NOW) == []


# =============================================================================
# Recent window Tests
# =============================================================================


def test__filter_bookmarks__recent_24h(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, StaticLocation(StaticView.RECENT), now=NOW)
    assert _ids(result) == ["new"]


def test__filter_bookmarks__recent_7d(snapshot: Snapshot) -> None:
    result = filter_bookmarks(
        snapshot, StaticLocation(StaticView.RECENT), window=RecentWindow.WEEK, now=NOW,
    )
    assert _ids(result) == ["new", "fav"]


def test__filter_bookmarks__recent_boundary_inclusive() -> None:
    snapshot = Snapshot(
        bookmarks=(
            _record("edge", created_at=NOW - timedelta(days=1)),
            _record("past", created_at=NOW - timedelta(days=1, microseconds=1)),
        ),
    )
    result = filter_bookmarks(snapshot, StaticLocation(StaticView.RECENT), now=NOW)
    assert _ids(result) == ["edge"]


def test__filter_bookmarks__recent_skips_undated(snapshot: Snapshot) -> None:
    result = filter_bookmarks(
        snapshot, StaticLocation(StaticView.RECENT), window=RecentWindow.MONTH, now=NOW,
    )
    assert "undated" not in _ids(result)


def test__recent_window__deltas() -> None:
    assert RecentWindow("24h").delta == timedelta(days=1)
    assert RecentWindow("7d").delta == timedelta(days=7)
    assert RecentWindow("30d").delta == timedelta(days=30)


# =============================================================================
# Search Tests
# =============================================================================


def test__filter_bookmarks__search_matches_title_notes_and_tags(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, ALL_BOOKMARKS, search="react", now=NOW)
    assert _ids(result) == ["new", "notes"]


def test__filter_bookmarks__search_in_trash(snapshot: Snapshot) -> None:
    result = filter_bookmarks(
        snapshot, StaticLocation(StaticView.TRASH), search="REACT", now=NOW,
    )
    assert _ids(result) == ["trashed"]


def test__filter_bookmarks__search_matches_url(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, ALL_BOOKMARKS, search="example.com", now=NOW)
    assert _ids(result) == ["notes"]


def test__filter_bookmarks__blank_search_ignored(snapshot: Snapshot) -> None:
    with_blank = filter_bookmarks(snapshot, ALL_BOOKMARKS, search="   ", now=NOW)
    without = filter_bookmarks(snapshot, ALL_BOOKMARKS, now=NOW)
    assert with_blank == without


def test__filter_bookmarks__search_term_trimmed(snapshot: Snapshot) -> None:
    result = filter_bookmarks(snapshot, ALL_BOOKMARKS, search="  python  ", now=NOW)
    assert _ids(result) == ["fav"]


def test__filter_bookmarks__is_deterministic(snapshot: Snapshot) -> None:
    first = filter_bookmarks(snapshot, ALL_BOOKMARKS, search="e", now=NOW)
    second = filter_bookmarks(snapshot, ALL_BOOKMARKS, search="e", now=NOW)
    assert first == second


# =============================================================================
# location_after_folder_delete Tests
# =============================================================================


def test__location_after_folder_delete__active_folder_goes_to_all() -> None:
    assert location_after_folder_delete(FolderLocation("f1"), "f1") == ALL_BOOKMARKS


def test__location_after_folder_delete__other_location_unchanged() -> None:
    trash = StaticLocation(StaticView.TRASH)
    assert location_after_folder_delete(trash, "f1") == trash
    assert location_after_folder_delete(FolderLocation("f2"), "f1") == FolderLocation("f2")
