"""Folder endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import DOMAIN_ERRORS, to_http_exception
from models.user import User
from schemas.folder import (
    CascadePolicy,
    FolderCreate,
    FolderDeleteResponse,
    FolderResponse,
    FolderTreeNode,
    FolderUpdate,
    FolderUpdateResponse,
)
from services import folder_service, move_service
from services.folder_service import FolderTree
from services.snapshot_service import load_snapshot
from services.view_filter import location_after_folder_delete, parse_location

router = APIRouter(prefix="/folders", tags=["folders"])


def _tree_to_schema(nodes: list[FolderTree]) -> list[FolderTreeNode]:
    return [
        FolderTreeNode(
            id=node.id,
            name=node.name,
            parent_id=node.parent_id,
            children=_tree_to_schema(node.children),
        )
        for node in nodes
    ]


@router.get("/", response_model=list[FolderResponse])
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[FolderResponse]:
    """List all folders, oldest first."""
    folders = await folder_service.list_folders(db, current_user.id)
    return [FolderResponse.model_validate(f) for f in folders]


@router.get("/tree", response_model=list[FolderTreeNode])
async def folder_tree(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[FolderTreeNode]:
    """Folders nested under their parents."""
    snapshot = await load_snapshot(db, current_user.id)
    return _tree_to_schema(folder_service.build_folder_tree(snapshot))


@router.post("/", response_model=FolderResponse, status_code=201)
async def create_folder(
    data: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> FolderResponse:
    """Create a folder at the root or under parent_id."""
    try:
        folder = await folder_service.create_folder(
            db, current_user.id, data.name, data.parent_id,
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return FolderResponse.model_validate(folder)


@router.patch("/{folder_id}", response_model=FolderUpdateResponse)
async def update_folder(
    folder_id: str,
    data: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> FolderUpdateResponse:
    """
    Rename and/or move a folder.

    A move goes through the drag-and-drop engine: moving a folder into itself
    or one of its subfolders is refused with a warning and nothing changes,
    the rename included. The move runs first, so a new name must be unique
    among the siblings under the new parent.
    """
    warning = None
    try:
        if "parent_id" in data.model_fields_set:
            target = "all" if data.parent_id is None else f"folder:{data.parent_id}"
            decision = await move_service.apply_drop(
                db, current_user.id, move_service.DragSourceType.FOLDER, folder_id, target,
            )
            warning = decision.warning
        if data.name is not None and warning is None:
            await folder_service.rename_folder(db, current_user.id, folder_id, data.name)
        folder = await folder_service.get_folder(db, current_user.id, folder_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    if folder is None:
        raise HTTPException(status_code=404, detail="Folder not found")
    return FolderUpdateResponse(folder=FolderResponse.model_validate(folder), warning=warning)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
async def delete_folder(
    folder_id: str,
    policy: CascadePolicy | None = Query(
        default=None,
        description="What to do with the folder's bookmarks: trash, root or delete",
    ),
    active_location: str | None = Query(
        default=None,
        description="Location the client is showing, e.g. 'folder:<id>'",
    ),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> FolderDeleteResponse:
    """
    Delete a folder.

    Returns 409 with the bookmark count if the folder has bookmarks and no
    policy was given. Child folders move to the root. next_location tells the
    client where to navigate if it was showing the deleted folder.
    """
    try:
        active = parse_location(active_location) if active_location else None
        result = await folder_service.delete_folder(db, current_user.id, folder_id, policy)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return FolderDeleteResponse(
        folder_id=result.folder_id,
        policy=result.policy,
        bookmark_count=result.bookmark_count,
        promoted_folder_ids=result.promoted_folder_ids,
        next_location=str(location_after_folder_delete(active, folder_id)),
    )
