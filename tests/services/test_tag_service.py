"""Tests for tag service layer functionality."""
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag
from models.user import User
from schemas.bookmark import BookmarkCreate
from services import bookmark_service
from services.exceptions import (
    NotAuthenticatedError,
    NotFoundError,
    TagAlreadyExistsError,
    ValidationError,
)
from services.snapshot_service import load_snapshot
from services.tag_service import (
    delete_tag,
    get_or_create_tags,
    get_tag_by_name,
    rename_tag,
)


async def _bookmark(db: AsyncSession, user: User, url: str, tags: list[str]) -> Bookmark:
    return await bookmark_service.create_bookmark(
        db, user.id, BookmarkCreate(url=url, tags=tags),
    )


# =============================================================================
# get_or_create_tags Tests
# =============================================================================


async def test__get_or_create_tags__creates_new_tags(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    tags = await get_or_create_tags(db_session, test_user.id, ["python", "web"])

    assert [t.name for t in tags] == ["python", "web"]
    for tag in tags:
        assert tag.user_id == test_user.id
        assert tag.id is not None


async def test__get_or_create_tags__reuses_existing(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    first = await get_or_create_tags(db_session, test_user.id, ["python"])
    second = await get_or_create_tags(db_session, test_user.id, ["python", "python "])

    assert len(second) == 1
    assert second[0].id == first[0].id


async def test__get_or_create_tags__scoped_per_user(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
) -> None:
    mine = await get_or_create_tags(db_session, test_user.id, ["python"])
    theirs = await get_or_create_tags(db_session, other_user.id, ["python"])
    assert mine[0].id != theirs[0].id


# =============================================================================
# rename_tag Tests
# =============================================================================


async def test__rename_tag__every_bookmark_sees_new_name(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await _bookmark(db_session, test_user, "https://a.com", ["js", "web"])
    await _bookmark(db_session, test_user, "https://b.com", ["js"])
    await _bookmark(db_session, test_user, "https://c.com", ["web"])

    count = await rename_tag(db_session, test_user.id, "js", "javascript")

    assert count == 2
    snapshot = await load_snapshot(db_session, test_user.id)
    assert snapshot.tag_set() == ["javascript", "web"]
    assert all("js" not in b.tags for b in snapshot.bookmarks)


async def test__rename_tag__existing_name_conflicts(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await _bookmark(db_session, test_user, "https://a.com", ["js"])
    await _bookmark(db_session, test_user, "https://b.com", ["javascript"])

    with pytest.raises(TagAlreadyExistsError):
        await rename_tag(db_session, test_user.id, "js", "javascript")

    snapshot = await load_snapshot(db_session, test_user.id)
    assert snapshot.tag_set() == ["javascript", "js"]


async def test__rename_tag__unused_row_with_new_name_is_reclaimed(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await get_or_create_tags(db_session, test_user.id, ["javascript"])
    await _bookmark(db_session, test_user, "https://a.com", ["js"])

    count = await rename_tag(db_session, test_user.id, "js", "javascript")

    assert count == 1
    result = await db_session.execute(select(Tag).where(Tag.user_id == test_user.id))
    assert [t.name for t in result.scalars()] == ["javascript"]


async def test__rename_tag__same_name_rejected(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await _bookmark(db_session, test_user, "https://a.com", ["js"])
    with pytest.raises(ValidationError, match="differ"):
        await rename_tag(db_session, test_user.id, "js", " js ")


async def test__rename_tag__blank_new_name_rejected(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await _bookmark(db_session, test_user, "https://a.com", ["js"])
    with pytest.raises(ValidationError):
        await rename_tag(db_session, test_user.id, "js", "   ")


async def test__rename_tag__unknown_old_name_not_found(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    with pytest.raises(NotFoundError):
        await rename_tag(db_session, test_user.id, "nope", "other")


async def test__rename_tag__tag_on_trashed_bookmark_still_renamed(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    bookmark = await _bookmark(db_session, test_user, "https://a.com", ["old"])
    await bookmark_service.trash_bookmark(db_session, test_user.id, bookmark.id)

    await rename_tag(db_session, test_user.id, "old", "new")

    assert bookmark.tags == ["new"]


async def test__rename_tag__requires_user(db_session: AsyncSession) -> None:
    with pytest.raises(NotAuthenticatedError):
        await rename_tag(db_session, None, "a", "b")


# =============================================================================
# delete_tag Tests
# =============================================================================


async def test__delete_tag__removed_from_every_bookmark(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await _bookmark(db_session, test_user, "https://a.com", ["js", "web"])
    await _bookmark(db_session, test_user, "https://b.com", ["js"])

    count = await delete_tag(db_session, test_user.id, "js")

    assert count == 2
    assert await get_tag_by_name(db_session, test_user.id, "js") is None
    snapshot = await load_snapshot(db_session, test_user.id)
    assert [sorted(b.tags) for b in snapshot.bookmarks] == [[], ["web"]]


async def test__delete_tag__unknown_tag_is_noop(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    assert await delete_tag(db_session, test_user.id, "ghost") == 0


async def test__delete_tag__other_users_tag_untouched(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
) -> None:
    await _bookmark(db_session, other_user, "https://a.com", ["js"])

    assert await delete_tag(db_session, test_user.id, "js") == 0
    assert await get_tag_by_name(db_session, other_user.id, "js") is not None
