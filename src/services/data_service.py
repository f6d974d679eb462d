"""
Export and import of a user's bookmarks and folders.

Import is an upsert keyed by record id: unknown ids are created, known ids
are merged (only the fields present in the file are written). Ownership of
every id is checked before the first write, so a file that touches another
user's records is rejected as a whole.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.change_feed import mark_changed
from models.base import utcnow
from models.bookmark import Bookmark, BookmarkType
from models.folder import Folder
from schemas.data import (
    ExportBookmark,
    ExportDocument,
    ExportFolder,
    ImportBookmark,
    ImportDocument,
    ImportFolder,
    ImportResult,
)
from services.bookmark_service import derive_title, validate_content
from services.exceptions import ValidationError
from services.snapshot_service import FolderRecord, Snapshot, load_snapshot
from services.tag_service import update_bookmark_tags
from services.utils import require_user

logger = logging.getLogger(__name__)


async def export_data(db: AsyncSession, user_id: str | None) -> ExportDocument:
    """Every bookmark (trashed included) and folder of a user, in snapshot order."""
    user_id = require_user(user_id)
    snapshot = await load_snapshot(db, user_id)
    return ExportDocument(
        bookmarks=[
            ExportBookmark(
                id=b.id,
                type=b.type,
                title=b.title,
                url=b.url,
                text_content=b.text_content,
                notes=b.notes,
                tags=list(b.tags),
                is_favorite=b.is_favorite,
                folder_id=b.folder_id,
                is_trashed=b.is_trashed,
                created_at=b.created_at,
                updated_at=b.updated_at,
            )
            for b in snapshot.bookmarks
        ],
        folders=[ExportFolder.model_validate(f) for f in snapshot.folders],
    )


async def _existing_by_id(db: AsyncSession, model: type, ids: list[str], user_id: str) -> dict:
    """Load rows with the given ids; raise if any of them belongs to another user."""
    if not ids:
        return {}
    query = select(model).where(model.id.in_(ids))
    if model is Bookmark:
        query = query.options(selectinload(Bookmark.tag_objects))
    result = await db.execute(query)
    rows = {row.id: row for row in result.scalars()}
    for row in rows.values():
        if row.user_id != user_id:
            raise ValidationError(f"Record '{row.id}' cannot be imported")
    return rows


def _merge_folder(folder: Folder, record: ImportFolder) -> None:
    fields = record.model_fields_set
    if "name" in fields and record.name and record.name.strip():
        folder.name = record.name.strip()
    if "parent_id" in fields:
        folder.parent_id = record.parent_id
    if "created_at" in fields and record.created_at is not None:
        folder.created_at = record.created_at


def _merge_bookmark(bookmark: Bookmark, record: ImportBookmark) -> None:
    fields = record.model_fields_set
    for name in ("title", "url", "text_content", "notes"):
        if name in fields:
            setattr(bookmark, name, getattr(record, name))
    for name in ("type", "is_favorite", "is_trashed", "created_at"):
        if name in fields and getattr(record, name) is not None:
            setattr(bookmark, name, getattr(record, name))
    if "folder_id" in fields:
        bookmark.folder_id = record.folder_id
    if bookmark.is_trashed:
        bookmark.folder_id = None


async def _merged_folder_parents(
    db: AsyncSession,
    user_id: str,
    records: list[ImportFolder],
) -> dict[str, str | None]:
    """Parent of every folder the user would have once the records are applied."""
    result = await db.execute(
        select(Folder.id, Folder.parent_id).where(Folder.user_id == user_id),
    )
    parents: dict[str, str | None] = {row.id: row.parent_id for row in result}
    for record in records:
        if "parent_id" in record.model_fields_set:
            parents[record.id] = record.parent_id
        else:
            parents.setdefault(record.id, None)
    return parents


def _check_folder_tree(parents: dict[str, str | None], records: list[ImportFolder]) -> None:
    """Raise if an imported folder points at a missing parent or ends up inside itself."""
    for record in records:
        parent_id = parents[record.id]
        if parent_id is not None and parent_id not in parents:
            raise ValidationError(f"Folder '{record.id}' has unknown parent '{parent_id}'")
    tree = Snapshot(
        folders=tuple(
            FolderRecord(id=folder_id, name="", parent_id=parent_id)
            for folder_id, parent_id in parents.items()
        ),
    )
    for record in records:
        if record.id in tree.ancestors(record.id):
            raise ValidationError(
                f"Folder '{record.id}' cannot be inside itself or one of its subfolders",
            )


def _merged_content(
    bookmark: Bookmark | None,
    record: ImportBookmark,
) -> tuple[BookmarkType, str | None, str | None]:
    """(type, url, text_content) the bookmark would have once the record is applied."""
    fields = record.model_fields_set
    bookmark_type = bookmark.type if bookmark is not None else BookmarkType.LINK
    url = bookmark.url if bookmark is not None else None
    text_content = bookmark.text_content if bookmark is not None else None
    if "type" in fields and record.type is not None:
        bookmark_type = record.type
    if "url" in fields:
        url = record.url
    if "text_content" in fields:
        text_content = record.text_content
    try:
        url, text_content = validate_content(bookmark_type, url, text_content)
    except ValidationError as e:
        raise ValidationError(f"Bookmark '{record.id}': {e}") from e
    return bookmark_type, url, text_content


async def import_data(
    db: AsyncSession,
    user_id: str | None,
    document: ImportDocument,
) -> ImportResult:
    """
    Upsert every record of an import document in one transaction.

    Folders are written before bookmarks. updated_at is set to the import
    time; created_at is taken from the file when present. Bookmark content
    follows the same rules as create: links need a url, text bookmarks need
    text, and a blank title is derived from either.

    Raises:
        ValidationError: If any id belongs to another user, a new folder has
            no name, a folder's parent is unknown or would create a cycle, a
            bookmark names an unknown folder, or a bookmark lacks the content
            its type requires. Nothing is written.
    """
    user_id = require_user(user_id)
    folders = await _existing_by_id(db, Folder, [f.id for f in document.folders], user_id)
    bookmarks = await _existing_by_id(
        db, Bookmark, [b.id for b in document.bookmarks], user_id,
    )
    for record in document.folders:
        if record.id not in folders and not (record.name and record.name.strip()):
            raise ValidationError(f"Folder '{record.id}' has no name")
    parents = await _merged_folder_parents(db, user_id, document.folders)
    _check_folder_tree(parents, document.folders)

    contents = {}
    for record in document.bookmarks:
        if (
            "folder_id" in record.model_fields_set
            and record.folder_id is not None
            and record.folder_id not in parents
        ):
            raise ValidationError(
                f"Bookmark '{record.id}' is in unknown folder '{record.folder_id}'",
            )
        contents[record.id] = _merged_content(bookmarks.get(record.id), record)

    now = utcnow()
    result = ImportResult(
        bookmarks_created=0, bookmarks_updated=0, folders_created=0, folders_updated=0,
    )

    for record in document.folders:
        folder = folders.get(record.id)
        if folder is None:
            folder = Folder(id=record.id, user_id=user_id, created_at=now)
            db.add(folder)
            folders[record.id] = folder
            result.folders_created += 1
        else:
            result.folders_updated += 1
        _merge_folder(folder, record)
        folder.updated_at = now

    for record in document.bookmarks:
        bookmark = bookmarks.get(record.id)
        if bookmark is None:
            bookmark = Bookmark(
                id=record.id,
                user_id=user_id,
                type=BookmarkType.LINK,
                is_favorite=False,
                is_trashed=False,
                created_at=now,
            )
            bookmark.tag_objects = []
            db.add(bookmark)
            bookmarks[record.id] = bookmark
            result.bookmarks_created += 1
        else:
            result.bookmarks_updated += 1
        _merge_bookmark(bookmark, record)
        bookmark_type, url, text_content = contents[record.id]
        bookmark.type = bookmark_type
        bookmark.url = url
        bookmark.text_content = text_content
        bookmark.title = derive_title(bookmark_type, bookmark.title, url, text_content)
        bookmark.updated_at = now

    await db.flush()
    for record in document.bookmarks:
        if record.tags is not None:
            await update_bookmark_tags(db, bookmarks[record.id], record.tags)

    mark_changed(db, user_id)
    logger.info(
        "Imported %d bookmark(s) and %d folder(s) for user %s",
        len(document.bookmarks), len(document.folders), user_id,
    )
    return result
