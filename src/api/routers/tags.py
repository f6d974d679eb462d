"""Tag endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import DOMAIN_ERRORS, to_http_exception
from models.user import User
from schemas.tag import TagCount, TagListResponse, TagRenameRequest, TagRenameResponse
from services.snapshot_service import load_snapshot
from services.tag_service import delete_tag, rename_tag

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=TagListResponse)
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """
    Get all tags used by the current user's bookmarks.

    Tags on trashed bookmarks are listed too; count only includes bookmarks
    that are not in the trash.
    """
    snapshot = await load_snapshot(db, current_user.id)
    counts = snapshot.tag_counts()
    return TagListResponse(
        tags=[TagCount(name=name, count=count) for name, count in counts.items()],
    )


@router.patch("/{tag_name}", response_model=TagRenameResponse)
async def rename_tag_endpoint(
    tag_name: str,
    rename_request: TagRenameRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagRenameResponse:
    """
    Rename a tag on every bookmark that carries it.

    Returns 404 if no bookmark carries the tag.
    Returns 409 if a tag with the new name already exists.
    """
    try:
        count = await rename_tag(db, current_user.id, tag_name, rename_request.new_name)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return TagRenameResponse(
        old_name=tag_name.strip(),
        new_name=rename_request.new_name,
        bookmark_count=count,
    )


@router.delete("/{tag_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag_endpoint(
    tag_name: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Remove a tag from every bookmark. Deleting an unused tag succeeds."""
    try:
        await delete_tag(db, current_user.id, tag_name)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
