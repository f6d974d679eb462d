"""
Service layer for bookmark mutations.

Every function runs inside the caller's session and only flushes; the request
session commits once at the end, so each operation (including bulk ones)
lands as a single atomic batch. Validation and existence checks happen before
the first write. Placement rules are the same everywhere: a trashed bookmark
never keeps a folder_id, and restoring or moving a bookmark out of the trash
always starts it unfiled unless a target folder is given.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.change_feed import mark_changed
from models.base import utcnow
from models.bookmark import Bookmark, BookmarkType
from models.folder import Folder
from schemas.bookmark import BookmarkCreate, BookmarkUpdate
from schemas.validators import validate_and_normalize_tag, validate_and_normalize_tags
from services.exceptions import NoOpError, NotFoundError, ValidationError
from services.tag_service import add_bookmark_tags, update_bookmark_tags
from services.utils import clean_text, require_user, unique_ids

logger = logging.getLogger(__name__)

TEXT_TITLE_LENGTH = 50


def derive_title(
    bookmark_type: BookmarkType,
    title: str | None,
    url: str | None,
    text_content: str | None,
) -> str | None:
    """
    Title to store: the given one, else the url (links) or the start of the text.

    Text longer than 50 characters is cut to 50 and followed by '...'.
    """
    title = clean_text(title)
    if title:
        return title
    if bookmark_type == BookmarkType.LINK:
        return clean_text(url)
    text = clean_text(text_content)
    if text and len(text) > TEXT_TITLE_LENGTH:
        return text[:TEXT_TITLE_LENGTH] + "..."
    return text


def validate_content(
    bookmark_type: BookmarkType,
    url: str | None,
    text_content: str | None,
) -> tuple[str | None, str | None]:
    """Return (url, text_content) for the bookmark type, or raise if the required one is blank."""
    url = clean_text(url)
    text_content = clean_text(text_content)
    if bookmark_type == BookmarkType.LINK:
        if not url:
            raise ValidationError("URL is required for link bookmarks")
        return url, None
    if not text_content:
        raise ValidationError("Text content is required for text bookmarks")
    return None, text_content


def _validated_content(data: BookmarkCreate) -> tuple[str | None, str | None]:
    return validate_content(data.type, data.url, data.text_content)


async def ensure_folder_exists(db: AsyncSession, user_id: str, folder_id: str) -> None:
    """Raise ValidationError unless folder_id is one of the user's folders."""
    result = await db.execute(
        select(Folder.id).where(Folder.id == folder_id, Folder.user_id == user_id),
    )
    if result.scalar_one_or_none() is None:
        raise ValidationError(f"Folder '{folder_id}' does not exist")


async def get_bookmark(
    db: AsyncSession,
    user_id: str,
    bookmark_id: str,
) -> Bookmark | None:
    """Get a bookmark by ID, scoped to user, with tags loaded."""
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def _get_owned_bookmark(db: AsyncSession, user_id: str, bookmark_id: str) -> Bookmark:
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        raise NotFoundError("Bookmark", bookmark_id)
    return bookmark


async def _get_owned_bookmarks(
    db: AsyncSession,
    user_id: str,
    bookmark_ids: list[str],
) -> list[Bookmark]:
    """Load every id or raise NotFoundError for the first one missing; nothing is written."""
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(
            Bookmark.user_id == user_id,
            Bookmark.id.in_(bookmark_ids),
        ),
    )
    found = {bookmark.id: bookmark for bookmark in result.scalars()}
    for bookmark_id in bookmark_ids:
        if bookmark_id not in found:
            raise NotFoundError("Bookmark", bookmark_id)
    return [found[bookmark_id] for bookmark_id in bookmark_ids]


def _place(bookmark: Bookmark, folder_id: str | None, is_trashed: bool) -> None:
    bookmark.is_trashed = is_trashed
    bookmark.folder_id = None if is_trashed else folder_id


async def create_bookmark(
    db: AsyncSession,
    user_id: str | None,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Raises:
        ValidationError: If the url (link) or text content (text) is blank, or
            the folder does not exist.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    user_id = require_user(user_id)
    url, text_content = _validated_content(data)
    if data.folder_id is not None:
        await ensure_folder_exists(db, user_id, data.folder_id)

    now = utcnow()
    bookmark = Bookmark(
        user_id=user_id,
        type=data.type,
        title=derive_title(data.type, data.title, url, text_content),
        url=url,
        text_content=text_content,
        notes=clean_text(data.notes),
        is_favorite=data.is_favorite,
        folder_id=data.folder_id,
        is_trashed=False,
        created_at=now,
        updated_at=now,
    )
    bookmark.tag_objects = []
    db.add(bookmark)
    await db.flush()
    await update_bookmark_tags(db, bookmark, data.tags)
    mark_changed(db, user_id)
    return bookmark


async def update_bookmark(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
    data: BookmarkUpdate,
) -> Bookmark:
    """
    Replace a bookmark's editable fields.

    Trash state is not editable here; a trashed bookmark keeps folder_id null
    whatever folder the update names.

    Raises:
        NotFoundError: If the bookmark does not exist for this user.
        ValidationError: If required content is blank or the folder is unknown.
    """
    user_id = require_user(user_id)
    url, text_content = _validated_content(data)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    if data.folder_id is not None and not bookmark.is_trashed:
        await ensure_folder_exists(db, user_id, data.folder_id)

    bookmark.type = data.type
    bookmark.title = derive_title(data.type, data.title, url, text_content)
    bookmark.url = url
    bookmark.text_content = text_content
    bookmark.notes = clean_text(data.notes)
    bookmark.is_favorite = data.is_favorite
    _place(bookmark, data.folder_id, bookmark.is_trashed)
    await update_bookmark_tags(db, bookmark, data.tags)
    bookmark.updated_at = utcnow()
    await db.flush()
    mark_changed(db, user_id)
    return bookmark


async def toggle_favorite(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
) -> Bookmark:
    """Flip is_favorite."""
    user_id = require_user(user_id)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    bookmark.is_favorite = not bookmark.is_favorite
    await db.flush()
    mark_changed(db, user_id)
    return bookmark


async def add_tag(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
    tag_name: str,
) -> Bookmark:
    """Add one tag to a bookmark; adding a tag it already has changes nothing."""
    user_id = require_user(user_id)
    try:
        normalized = validate_and_normalize_tag(tag_name)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    await add_bookmark_tags(db, bookmark, [normalized])
    mark_changed(db, user_id)
    return bookmark


async def remove_tag(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
    tag_name: str,
) -> Bookmark:
    """Remove one tag from a bookmark; removing an absent tag changes nothing."""
    user_id = require_user(user_id)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    name = tag_name.strip()
    remaining = [tag for tag in bookmark.tag_objects if tag.name != name]
    if len(remaining) != len(bookmark.tag_objects):
        bookmark.tag_objects = remaining
        await db.flush()
        mark_changed(db, user_id)
    return bookmark


async def trash_bookmark(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
) -> Bookmark:
    """Move a bookmark to the trash; it leaves its folder."""
    user_id = require_user(user_id)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    _place(bookmark, None, is_trashed=True)
    await db.flush()
    mark_changed(db, user_id)
    return bookmark


async def restore_bookmark(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
) -> Bookmark:
    """
    Restore a trashed bookmark as unfiled.

    It does not return to the folder it was in before trashing.

    Raises:
        NotFoundError: If the bookmark does not exist or is not in the trash.
    """
    user_id = require_user(user_id)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    if not bookmark.is_trashed:
        raise NotFoundError("Trashed bookmark", bookmark_id)
    _place(bookmark, None, is_trashed=False)
    await db.flush()
    mark_changed(db, user_id)
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
) -> None:
    """
    Permanently remove a bookmark.

    Offered from the Trash view only; the service does not insist on it.
    """
    user_id = require_user(user_id)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    await db.delete(bookmark)
    await db.flush()
    mark_changed(db, user_id)


async def place_bookmark(
    db: AsyncSession,
    user_id: str | None,
    bookmark_id: str,
    folder_id: str | None,
    is_trashed: bool,
) -> Bookmark:
    """Set a bookmark's folder and trash state together (drag-and-drop moves)."""
    user_id = require_user(user_id)
    bookmark = await _get_owned_bookmark(db, user_id, bookmark_id)
    _place(bookmark, folder_id, is_trashed)
    await db.flush()
    mark_changed(db, user_id)
    return bookmark


async def bulk_trash(
    db: AsyncSession,
    user_id: str | None,
    bookmark_ids: list[str],
) -> int:
    """
    Trash every selected bookmark in one batch.

    Raises:
        NoOpError: If the selection is empty.
        NotFoundError: If any id is unknown; nothing is trashed.
    """
    user_id = require_user(user_id)
    ids = unique_ids(bookmark_ids)
    if not ids:
        raise NoOpError("No bookmarks selected")
    bookmarks = await _get_owned_bookmarks(db, user_id, ids)
    for bookmark in bookmarks:
        _place(bookmark, None, is_trashed=True)
    await db.flush()
    mark_changed(db, user_id)
    logger.info("Trashed %d bookmark(s) for user %s", len(bookmarks), user_id)
    return len(bookmarks)


async def bulk_move_to_folder(
    db: AsyncSession,
    user_id: str | None,
    bookmark_ids: list[str],
    folder_id: str | None,
) -> int:
    """
    Move every selected bookmark into a folder, taking it out of the trash.

    Raises:
        ValidationError: If no target folder is chosen or it does not exist.
        NoOpError: If the selection is empty.
        NotFoundError: If any id is unknown; nothing is moved.
    """
    user_id = require_user(user_id)
    if not folder_id:
        raise ValidationError("Choose a folder to move the bookmarks to")
    ids = unique_ids(bookmark_ids)
    if not ids:
        raise NoOpError("No bookmarks selected")
    await ensure_folder_exists(db, user_id, folder_id)
    bookmarks = await _get_owned_bookmarks(db, user_id, ids)
    for bookmark in bookmarks:
        _place(bookmark, folder_id, is_trashed=False)
    await db.flush()
    mark_changed(db, user_id)
    logger.info(
        "Moved %d bookmark(s) to folder %s for user %s", len(bookmarks), folder_id, user_id,
    )
    return len(bookmarks)


async def bulk_add_tags(
    db: AsyncSession,
    user_id: str | None,
    bookmark_ids: list[str],
    tag_names: list[str],
) -> int:
    """
    Union the staged tags into every selected bookmark.

    Raises:
        ValidationError: If no tags are staged or no bookmark is selected.
        NotFoundError: If any id is unknown; nothing is tagged.
    """
    user_id = require_user(user_id)
    try:
        tags = validate_and_normalize_tags(tag_names)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if not tags:
        raise ValidationError("Add at least one tag to apply")
    ids = unique_ids(bookmark_ids)
    if not ids:
        raise ValidationError("No bookmarks selected")
    bookmarks = await _get_owned_bookmarks(db, user_id, ids)
    for bookmark in bookmarks:
        await add_bookmark_tags(db, bookmark, tags)
    mark_changed(db, user_id)
    logger.info(
        "Added %d tag(s) to %d bookmark(s) for user %s", len(tags), len(bookmarks), user_id,
    )
    return len(bookmarks)
