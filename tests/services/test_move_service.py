"""Tests for the drag-and-drop move engine."""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import pop_changed_users
from models.bookmark import BookmarkType
from models.user import User
from schemas.bookmark import BookmarkCreate
from services import bookmark_service, folder_service
from services.exceptions import NotFoundError, ValidationError
from services.move_service import DragSourceType, apply_drop, resolve_drop
from services.snapshot_service import BookmarkRecord, FolderRecord, Snapshot


@pytest.fixture
def snapshot() -> Snapshot:
    """
    Folders: work > projects > archive, plus a root-level 'Archive' sibling of work.

    Bookmark b1 is filed in projects.
    """
    return Snapshot(
        bookmarks=(
            BookmarkRecord(id="b1", type=BookmarkType.LINK, folder_id="projects"),
        ),
        folders=(
            FolderRecord(id="work", name="Work"),
            FolderRecord(id="projects", name="Projects", parent_id="work"),
            FolderRecord(id="archive", name="Archive", parent_id="projects"),
            FolderRecord(id="root-archive", name="archive"),
        ),
    )


# =============================================================================
# resolve_drop: bookmarks
# =============================================================================


def test__resolve_drop__bookmark_on_folder(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.BOOKMARK, "b1", "folder:work")
    assert decision.applied
    assert decision.folder_id == "work"
    assert decision.is_trashed is False


def test__resolve_drop__bookmark_on_trash(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.BOOKMARK, "b1", "trash")
    assert decision.applied
    assert decision.folder_id is None
    assert decision.is_trashed is True


@pytest.mark.parametrize("target", ["all", "favorites", "recent", "tags"])
def test__resolve_drop__bookmark_on_static_view_unfiles(
    snapshot: Snapshot,
    target: str,
) -> None:
    decision = resolve_drop(snapshot, DragSourceType.BOOKMARK, "b1", target)
    assert decision.applied
    assert decision.folder_id is None
    assert decision.is_trashed is False


def test__resolve_drop__bookmark_on_unknown_folder_rejected(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.BOOKMARK, "b1", "folder:missing")
    assert not decision.applied
    assert decision.warning


def test__resolve_drop__bookmark_on_tag_rejected(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.BOOKMARK, "b1", "tag:python")
    assert not decision.applied
    assert decision.warning


def test__resolve_drop__unknown_bookmark_not_found(snapshot: Snapshot) -> None:
    with pytest.raises(NotFoundError):
        resolve_drop(snapshot, DragSourceType.BOOKMARK, "nope", "trash")


def test__resolve_drop__unknown_target_string_rejected(snapshot: Snapshot) -> None:
    with pytest.raises(ValidationError):
        resolve_drop(snapshot, DragSourceType.BOOKMARK, "b1", "inbox")


# =============================================================================
# resolve_drop: folders
# =============================================================================


def test__resolve_drop__folder_on_itself_is_silent_noop(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "work", "folder:work")
    assert not decision.applied
    assert decision.warning is None


def test__resolve_drop__folder_into_own_descendant_rejected(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "work", "folder:archive")
    assert not decision.applied
    assert "subfolders" in decision.warning


def test__resolve_drop__folder_into_direct_child_rejected(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "work", "folder:projects")
    assert not decision.applied
    assert decision.warning


def test__resolve_drop__folder_to_unrelated_folder(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "projects", "folder:root-archive")
    assert decision.applied
    assert decision.parent_id == "root-archive"


def test__resolve_drop__folder_to_all_moves_to_root() -> None:
    snapshot = Snapshot(
        folders=(
            FolderRecord(id="a", name="A"),
            FolderRecord(id="b", name="B", parent_id="a"),
        ),
    )
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "b", "all")
    assert decision.applied
    assert decision.parent_id is None


def test__resolve_drop__folder_to_all_with_root_name_clash_rejected(snapshot: Snapshot) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "archive", "all")
    assert not decision.applied
    assert "already exists" in decision.warning


def test__resolve_drop__folder_already_at_root_dropped_on_all_is_noop(
    snapshot: Snapshot,
) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "work", "all")
    assert not decision.applied
    assert decision.warning is None


@pytest.mark.parametrize("target", ["favorites", "recent", "trash", "tags", "tag:x"])
def test__resolve_drop__folder_on_other_static_views_rejected(
    snapshot: Snapshot,
    target: str,
) -> None:
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "projects", target)
    assert not decision.applied
    assert decision.warning


def test__resolve_drop__unknown_folder_not_found(snapshot: Snapshot) -> None:
    with pytest.raises(NotFoundError):
        resolve_drop(snapshot, DragSourceType.FOLDER, "nope", "all")


def test__resolve_drop__cycle_in_data_does_not_hang() -> None:
    snapshot = Snapshot(
        folders=(
            FolderRecord(id="a", name="A", parent_id="b"),
            FolderRecord(id="b", name="B", parent_id="a"),
            FolderRecord(id="c", name="C"),
        ),
    )
    decision = resolve_drop(snapshot, DragSourceType.FOLDER, "c", "folder:a")
    assert decision.applied


# =============================================================================
# apply_drop Tests
# =============================================================================


async def test__apply_drop__moves_bookmark_out_of_trash_into_folder(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    folder = await folder_service.create_folder(db_session, test_user.id, "Reading")
    bookmark = await bookmark_service.create_bookmark(
        db_session, test_user.id, BookmarkCreate(url="https://a.com"),
    )
    await bookmark_service.trash_bookmark(db_session, test_user.id, bookmark.id)

    decision = await apply_drop(
        db_session, test_user.id, DragSourceType.BOOKMARK, bookmark.id, f"folder:{folder.id}",
    )

    assert decision.applied
    assert bookmark.is_trashed is False
    assert bookmark.folder_id == folder.id


async def test__apply_drop__reparents_folder(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    parent = await folder_service.create_folder(db_session, test_user.id, "Parent")
    child = await folder_service.create_folder(db_session, test_user.id, "Child")

    decision = await apply_drop(
        db_session, test_user.id, DragSourceType.FOLDER, child.id, f"folder:{parent.id}",
    )

    assert decision.applied
    assert child.parent_id == parent.id


async def test__apply_drop__rejected_cycle_writes_nothing(
    db_session: AsyncSession,
    test_user: User,
    caplog: pytest.LogCaptureFixture,
) -> None:
    parent = await folder_service.create_folder(db_session, test_user.id, "Parent")
    child = await folder_service.create_folder(db_session, test_user.id, "Child", parent.id)
    pop_changed_users(db_session)

    with caplog.at_level("WARNING", logger="services.move_service"):
        decision = await apply_drop(
            db_session, test_user.id, DragSourceType.FOLDER, parent.id, f"folder:{child.id}",
        )

    assert not decision.applied
    assert parent.parent_id is None
    assert pop_changed_users(db_session) == set()
    assert "Rejected drop" in caplog.text


async def test__apply_drop__other_users_bookmark_not_found(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(
        db_session, other_user.id, BookmarkCreate(url="https://a.com"),
    )
    with pytest.raises(NotFoundError):
        await apply_drop(db_session, test_user.id, DragSourceType.BOOKMARK, bookmark.id, "trash")
