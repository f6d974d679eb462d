"""Service layer for tag operations."""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.change_feed import mark_changed
from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.validators import validate_and_normalize_tag, validate_and_normalize_tags
from services.exceptions import NotFoundError, TagAlreadyExistsError, ValidationError
from services.utils import require_user

logger = logging.getLogger(__name__)


async def get_or_create_tags(
    db: AsyncSession,
    user_id: str,
    tag_names: list[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        tag_names: List of tag names to get or create.

    Returns:
        List of Tag objects (existing or newly created), in input order.
    """
    if not tag_names:
        return []

    normalized = validate_and_normalize_tags(tag_names)
    if not normalized:
        return []

    # Fetch existing tags
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name.in_(normalized),
        ),
    )
    existing_tags = {tag.name: tag for tag in result.scalars()}

    # Create missing tags
    tags = []
    for name in normalized:
        if name in existing_tags:
            tags.append(existing_tags[name])
        else:
            new_tag = Tag(user_id=user_id, name=name)
            db.add(new_tag)
            tags.append(new_tag)

    await db.flush()
    return tags


async def get_tag_by_name(
    db: AsyncSession,
    user_id: str,
    tag_name: str,
) -> Tag | None:
    """Get a tag row by exact (trimmed) name for a user."""
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name == tag_name.strip(),
        ),
    )
    return result.scalar_one_or_none()


async def count_tag_bookmarks(db: AsyncSession, tag: Tag) -> int:
    """Number of bookmarks (any state) that carry the tag."""
    result = await db.execute(
        select(func.count())
        .select_from(bookmark_tags)
        .where(bookmark_tags.c.tag_id == tag.id),
    )
    return result.scalar() or 0


async def update_bookmark_tags(
    db: AsyncSession,
    bookmark: Bookmark,
    tag_names: list[str],
) -> None:
    """
    Replace a bookmark's tags using the junction table.

    The bookmark must have tag_objects loaded.
    """
    if tag_names:
        tag_objects = await get_or_create_tags(db, bookmark.user_id, tag_names)
    else:
        tag_objects = []

    bookmark.tag_objects = tag_objects
    await db.flush()


async def add_bookmark_tags(
    db: AsyncSession,
    bookmark: Bookmark,
    tag_names: list[str],
) -> None:
    """Union tag_names into a bookmark's tags (tag_objects must be loaded)."""
    current = {tag.name for tag in bookmark.tag_objects}
    missing = [name for name in validate_and_normalize_tags(tag_names) if name not in current]
    if not missing:
        return
    bookmark.tag_objects.extend(await get_or_create_tags(db, bookmark.user_id, missing))
    await db.flush()


async def rename_tag(
    db: AsyncSession,
    user_id: str | None,
    old_name: str,
    new_name: str,
) -> int:
    """
    Rename a tag on every bookmark that carries it.

    The tag row is renamed in place, so all bookmarks switch from the old name
    to the new one in the same write; no bookmark can be seen with both or
    neither.

    Args:
        db: Database session.
        user_id: User ID to scope the tag.
        old_name: Current name of the tag.
        new_name: New name for the tag.

    Returns:
        Number of bookmarks that carry the renamed tag.

    Raises:
        ValidationError: If the new name is empty or equal to the old one.
        TagAlreadyExistsError: If the new name is already in the tag set.
        NotFoundError: If no bookmark carries the old tag.
    """
    user_id = require_user(user_id)
    old_normalized = old_name.strip()
    try:
        new_normalized = validate_and_normalize_tag(new_name)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if new_normalized == old_normalized:
        raise ValidationError("New tag name must differ from the current name")

    tag = await get_tag_by_name(db, user_id, old_normalized)
    if tag is None:
        raise NotFoundError("Tag", old_normalized)
    bookmark_count = await count_tag_bookmarks(db, tag)
    if bookmark_count == 0:
        raise NotFoundError("Tag", old_normalized)

    existing = await get_tag_by_name(db, user_id, new_normalized)
    if existing is not None:
        if await count_tag_bookmarks(db, existing) > 0:
            raise TagAlreadyExistsError(new_normalized)
        # Unused row left behind by earlier edits; drop it so the name is free
        await db.delete(existing)
        await db.flush()

    tag.name = new_normalized
    await db.flush()
    mark_changed(db, user_id)
    logger.info(
        "Renamed tag '%s' to '%s' on %d bookmark(s) for user %s",
        old_normalized, new_normalized, bookmark_count, user_id,
    )
    return bookmark_count


async def delete_tag(
    db: AsyncSession,
    user_id: str | None,
    tag_name: str,
) -> int:
    """
    Remove a tag from every bookmark that carries it.

    Deleting a tag nobody uses is a no-op.

    Returns:
        Number of bookmarks the tag was removed from.
    """
    user_id = require_user(user_id)
    tag = await get_tag_by_name(db, user_id, tag_name)
    if tag is None:
        return 0

    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .join(bookmark_tags, bookmark_tags.c.bookmark_id == Bookmark.id)
        .where(bookmark_tags.c.tag_id == tag.id),
    )
    bookmarks = list(result.scalars().unique())
    for bookmark in bookmarks:
        bookmark.tag_objects = [t for t in bookmark.tag_objects if t.id != tag.id]
    await db.flush()
    await db.delete(tag)
    await db.flush()
    bookmark_count = len(bookmarks)
    mark_changed(db, user_id)
    logger.info(
        "Deleted tag '%s' from %d bookmark(s) for user %s",
        tag.name, bookmark_count, user_id,
    )
    return bookmark_count
