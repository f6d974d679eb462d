"""Service layer for folder operations."""
import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.change_feed import mark_changed
from models.base import utcnow
from models.bookmark import Bookmark
from models.folder import Folder
from schemas.folder import CascadePolicy
from services.exceptions import CascadePolicyRequiredError, NotFoundError, ValidationError
from services.snapshot_service import Snapshot
from services.utils import clean_text, require_user

logger = logging.getLogger(__name__)


@dataclass
class FolderDeleteResult:
    """What a folder deletion did."""

    folder_id: str
    policy: CascadePolicy | None
    bookmark_count: int
    promoted_folder_ids: list[str] = field(default_factory=list)


@dataclass
class FolderTree:
    """A folder and its nested children, built from a snapshot."""

    id: str
    name: str
    parent_id: str | None
    children: list["FolderTree"] = field(default_factory=list)


def build_folder_tree(snapshot: Snapshot, parent_id: str | None = None) -> list[FolderTree]:
    """
    Nest the snapshot's folders under parent_id (root when None).

    Folders whose parent no longer exists are shown at the root. Each folder
    is visited once, so a corrupt parent chain cannot recurse forever.
    """
    visited: set[str] = set()

    def _build(current: str | None) -> list[FolderTree]:
        nodes = []
        for folder in snapshot.children_of(current):
            if folder.id in visited:
                continue
            visited.add(folder.id)
            nodes.append(
                FolderTree(
                    id=folder.id,
                    name=folder.name,
                    parent_id=folder.parent_id,
                    children=_build(folder.id),
                ),
            )
        return nodes

    roots = _build(parent_id)
    if parent_id is None:
        for folder in snapshot.folders:
            if folder.id not in visited and snapshot.folder(folder.parent_id or "") is None:
                visited.add(folder.id)
                roots.append(
                    FolderTree(
                        id=folder.id,
                        name=folder.name,
                        parent_id=folder.parent_id,
                        children=_build(folder.id),
                    ),
                )
    return roots


def _validated_name(name: str | None) -> str:
    cleaned = clean_text(name)
    if not cleaned:
        raise ValidationError("Folder name is required")
    if len(cleaned) > 255:
        raise ValidationError("Folder name exceeds maximum length of 255 characters")
    return cleaned


async def get_folder(
    db: AsyncSession,
    user_id: str,
    folder_id: str,
) -> Folder | None:
    """Get a folder by ID, scoped to user."""
    result = await db.execute(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def _get_owned_folder(db: AsyncSession, user_id: str, folder_id: str) -> Folder:
    folder = await get_folder(db, user_id, folder_id)
    if folder is None:
        raise NotFoundError("Folder", folder_id)
    return folder


async def list_folders(db: AsyncSession, user_id: str) -> list[Folder]:
    """All of a user's folders, oldest first."""
    result = await db.execute(
        select(Folder)
        .where(Folder.user_id == user_id)
        .order_by(Folder.created_at.asc(), Folder.id.asc()),
    )
    return list(result.scalars().all())


async def ensure_unique_name(
    db: AsyncSession,
    user_id: str,
    parent_id: str | None,
    name: str,
    exclude_id: str | None = None,
) -> None:
    """
    Raise ValidationError if a sibling under parent_id already uses name.

    Comparison is case-insensitive; root folders share one scope.
    """
    query = select(Folder.id).where(
        Folder.user_id == user_id,
        func.lower(Folder.name) == name.lower(),
    )
    if parent_id is None:
        query = query.where(Folder.parent_id.is_(None))
    else:
        query = query.where(Folder.parent_id == parent_id)
    if exclude_id is not None:
        query = query.where(Folder.id != exclude_id)
    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise ValidationError(f"A folder named '{name}' already exists here")


async def create_folder(
    db: AsyncSession,
    user_id: str | None,
    name: str,
    parent_id: str | None = None,
) -> Folder:
    """
    Create a folder at the root or under an existing folder.

    Raises:
        ValidationError: If the name is blank or taken by a sibling, or the
            parent does not exist.
    """
    user_id = require_user(user_id)
    cleaned = _validated_name(name)
    if parent_id is not None and await get_folder(db, user_id, parent_id) is None:
        raise ValidationError(f"Parent folder '{parent_id}' does not exist")
    await ensure_unique_name(db, user_id, parent_id, cleaned)

    now = utcnow()
    folder = Folder(
        user_id=user_id,
        name=cleaned,
        parent_id=parent_id,
        created_at=now,
        updated_at=now,
    )
    db.add(folder)
    await db.flush()
    mark_changed(db, user_id)
    return folder


async def rename_folder(
    db: AsyncSession,
    user_id: str | None,
    folder_id: str,
    name: str,
) -> Folder:
    """Rename a folder; raises NotFoundError or ValidationError."""
    user_id = require_user(user_id)
    cleaned = _validated_name(name)
    folder = await _get_owned_folder(db, user_id, folder_id)
    await ensure_unique_name(db, user_id, folder.parent_id, cleaned, exclude_id=folder.id)
    folder.name = cleaned
    folder.updated_at = utcnow()
    await db.flush()
    mark_changed(db, user_id)
    return folder


async def reparent_folder(
    db: AsyncSession,
    user_id: str | None,
    folder_id: str,
    parent_id: str | None,
) -> Folder:
    """
    Set a folder's parent without cycle checks.

    Callers go through the move engine, which rejects cycles first.
    """
    user_id = require_user(user_id)
    folder = await _get_owned_folder(db, user_id, folder_id)
    folder.parent_id = parent_id
    folder.updated_at = utcnow()
    await db.flush()
    mark_changed(db, user_id)
    return folder


async def delete_folder(
    db: AsyncSession,
    user_id: str | None,
    folder_id: str,
    policy: CascadePolicy | None = None,
) -> FolderDeleteResult:
    """
    Delete a folder, dealing with its bookmarks according to policy.

    An empty folder is deleted whatever the policy. Child folders are promoted
    to the root, never deleted.

    Args:
        db: Database session.
        user_id: User ID to scope the folder.
        folder_id: Folder to delete.
        policy: trash, root or delete for the folder's bookmarks.

    Raises:
        NotFoundError: If the folder does not exist for this user.
        CascadePolicyRequiredError: If the folder has bookmarks and no policy
            was given. Nothing is written.
    """
    user_id = require_user(user_id)
    folder = await _get_owned_folder(db, user_id, folder_id)

    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.user_id == user_id, Bookmark.folder_id == folder_id),
    )
    members = list(result.scalars().all())
    if members and policy is None:
        raise CascadePolicyRequiredError(folder_id, len(members))

    for bookmark in members:
        if policy == CascadePolicy.TRASH:
            bookmark.is_trashed = True
            bookmark.folder_id = None
        elif policy == CascadePolicy.ROOT:
            bookmark.is_trashed = False
            bookmark.folder_id = None
        else:
            await db.delete(bookmark)

    children = await db.execute(
        select(Folder).where(Folder.user_id == user_id, Folder.parent_id == folder_id),
    )
    promoted = []
    for child in children.scalars():
        child.parent_id = None
        promoted.append(child.id)

    await db.delete(folder)
    await db.flush()
    mark_changed(db, user_id)
    logger.info(
        "Deleted folder %s for user %s (policy=%s, bookmarks=%d, promoted=%d)",
        folder_id, user_id, policy, len(members), len(promoted),
    )
    return FolderDeleteResult(
        folder_id=folder_id,
        policy=policy if members else None,
        bookmark_count=len(members),
        promoted_folder_ids=promoted,
    )
