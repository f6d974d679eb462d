"""
Drag-and-drop move engine.

resolve_drop() turns a dragged item and a drop target into a MoveDecision
using only the snapshot; apply_drop() loads the snapshot, resolves, and issues
the single mutation the decision calls for. Rejected drops are warnings, not
errors: they come back with applied=False and nothing is written.
"""
import logging
from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession

from services import bookmark_service, folder_service
from services.exceptions import NotFoundError
from services.snapshot_service import Snapshot, load_snapshot
from services.utils import require_user
from services.view_filter import (
    FolderLocation,
    Location,
    StaticLocation,
    StaticView,
    parse_location,
)

logger = logging.getLogger(__name__)


class DragSourceType(StrEnum):
    """Kind of item being dragged."""

    BOOKMARK = "bookmark"
    FOLDER = "folder"


@dataclass(frozen=True)
class MoveDecision:
    """
    Outcome of resolving a drop.

    When applied is True the fields below describe the new placement: for a
    bookmark folder_id and is_trashed, for a folder parent_id.
    """

    applied: bool
    warning: str | None = None
    folder_id: str | None = None
    is_trashed: bool = False
    parent_id: str | None = None


NO_OP = MoveDecision(applied=False)


def _reject(message: str) -> MoveDecision:
    return MoveDecision(applied=False, warning=message)


def _resolve_bookmark(snapshot: Snapshot, target: Location) -> MoveDecision:
    if isinstance(target, FolderLocation):
        if snapshot.folder(target.folder_id) is None:
            return _reject("That folder no longer exists")
        return MoveDecision(applied=True, folder_id=target.folder_id, is_trashed=False)
    if isinstance(target, StaticLocation):
        if target.view == StaticView.TRASH:
            return MoveDecision(applied=True, folder_id=None, is_trashed=True)
        return MoveDecision(applied=True, folder_id=None, is_trashed=False)
    return _reject("Bookmarks cannot be dropped on a tag")


def _resolve_folder(snapshot: Snapshot, source_id: str, target: Location) -> MoveDecision:
    source = snapshot.folder(source_id)
    if isinstance(target, FolderLocation):
        if snapshot.folder(target.folder_id) is None:
            return _reject("That folder no longer exists")
        if snapshot.is_same_or_descendant(target.folder_id, source_id):
            return _reject("A folder cannot be moved into itself or one of its subfolders")
        new_parent = target.folder_id
    elif isinstance(target, StaticLocation) and target.view == StaticView.ALL:
        new_parent = None
    else:
        return _reject("Folders can only be dropped on another folder or All Bookmarks")

    if source.parent_id == new_parent:
        return NO_OP
    clash = any(
        sibling.id != source_id and sibling.name.lower() == source.name.lower()
        for sibling in snapshot.children_of(new_parent)
    )
    if clash:
        return _reject(f"A folder named '{source.name}' already exists there")
    return MoveDecision(applied=True, parent_id=new_parent)


def resolve_drop(
    snapshot: Snapshot,
    source_type: DragSourceType,
    source_id: str,
    target: Location | str,
) -> MoveDecision:
    """
    Decide what a drop does without touching the database.

    Args:
        snapshot: The user's current snapshot.
        source_type: bookmark or folder.
        source_id: Id of the dragged item.
        target: A Location or its string form ('trash', 'folder:<id>', ...).

    Returns:
        The decision; applied is False for no-ops and rejected drops.

    Raises:
        NotFoundError: If the dragged item is not in the snapshot.
        ValidationError: If the target string names no location.
    """
    location = parse_location(target) if isinstance(target, str) else target
    source_type = DragSourceType(source_type)

    if isinstance(location, FolderLocation) and location.folder_id == source_id:
        return NO_OP

    if source_type == DragSourceType.BOOKMARK:
        if snapshot.bookmark(source_id) is None:
            raise NotFoundError("Bookmark", source_id)
        return _resolve_bookmark(snapshot, location)

    if snapshot.folder(source_id) is None:
        raise NotFoundError("Folder", source_id)
    return _resolve_folder(snapshot, source_id, location)


async def apply_drop(
    db: AsyncSession,
    user_id: str | None,
    source_type: DragSourceType,
    source_id: str,
    target: Location | str,
) -> MoveDecision:
    """
    Resolve a drop against the user's current data and apply it.

    Rejections are logged at WARNING and returned, never raised.
    """
    user_id = require_user(user_id)
    snapshot = await load_snapshot(db, user_id)
    decision = resolve_drop(snapshot, source_type, source_id, target)

    if decision.warning:
        logger.warning(
            "Rejected drop of %s %s on %s for user %s: %s",
            source_type, source_id, target, user_id, decision.warning,
        )
        return decision
    if not decision.applied:
        return decision

    if DragSourceType(source_type) == DragSourceType.BOOKMARK:
        await bookmark_service.place_bookmark(
            db, user_id, source_id, decision.folder_id, decision.is_trashed,
        )
    else:
        await folder_service.reparent_folder(db, user_id, source_id, decision.parent_id)
    return decision

