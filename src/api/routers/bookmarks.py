"""Bookmark endpoints: CRUD, favorites, tags, trash and bulk actions."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from api.helpers import DOMAIN_ERRORS, to_http_exception
from core.config import Settings
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkResponse,
    BookmarkSelection,
    BookmarkUpdate,
    BulkMoveRequest,
    BulkResult,
    BulkTagsRequest,
    MetadataRequest,
    MetadataResponse,
    TagAddRequest,
)
from services import bookmark_service, url_scraper
from services.exceptions import NoOpError

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/fetch-metadata", response_model=MetadataResponse)
async def fetch_metadata(
    data: MetadataRequest,
    _current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> MetadataResponse:
    """
    Fetch title and thumbnail for a URL to prefill the bookmark form.

    Returns 502 if the page answered with an error status, 504 if it did not
    answer in time, and 400 if the URL could not be requested at all.
    """
    try:
        metadata = await url_scraper.fetch_metadata(
            data.url, timeout=settings.metadata_fetch_timeout,
        )
    except url_scraper.UpstreamStatusError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    except url_scraper.NoResponseError as e:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e)) from e
    except url_scraper.RequestSetupError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MetadataResponse(url=data.url, title=metadata.title, thumbnail=metadata.thumbnail)


@router.post("/bulk/trash", response_model=BulkResult)
async def bulk_trash(
    data: BookmarkSelection,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BulkResult:
    """Move every selected bookmark to the trash in one batch."""
    try:
        updated = await bookmark_service.bulk_trash(db, current_user.id, data.bookmark_ids)
    except NoOpError as e:
        return BulkResult(updated=0, warning=str(e))
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BulkResult(updated=updated)


@router.post("/bulk/move", response_model=BulkResult)
async def bulk_move(
    data: BulkMoveRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BulkResult:
    """Move every selected bookmark into a folder (out of the trash if needed)."""
    try:
        updated = await bookmark_service.bulk_move_to_folder(
            db, current_user.id, data.bookmark_ids, data.folder_id,
        )
    except NoOpError as e:
        return BulkResult(updated=0, warning=str(e))
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BulkResult(updated=updated)


@router.post("/bulk/tags", response_model=BulkResult)
async def bulk_add_tags(
    data: BulkTagsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BulkResult:
    """Add the given tags to every selected bookmark."""
    try:
        updated = await bookmark_service.bulk_add_tags(
            db, current_user.id, data.bookmark_ids, data.tags,
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BulkResult(updated=updated)


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Create a new bookmark."""
    try:
        bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.put("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: str,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Replace a bookmark's editable fields."""
    try:
        bookmark = await bookmark_service.update_bookmark(
            db, current_user.id, bookmark_id, data,
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.post("/{bookmark_id}/favorite", response_model=BookmarkResponse)
async def toggle_favorite(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Toggle a bookmark's favorite flag."""
    try:
        bookmark = await bookmark_service.toggle_favorite(db, current_user.id, bookmark_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.post("/{bookmark_id}/tags", response_model=BookmarkResponse)
async def add_tag(
    bookmark_id: str,
    data: TagAddRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Add one tag to a bookmark."""
    try:
        bookmark = await bookmark_service.add_tag(db, current_user.id, bookmark_id, data.tag)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}/tags/{tag_name}", response_model=BookmarkResponse)
async def remove_tag(
    bookmark_id: str,
    tag_name: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Remove one tag from a bookmark."""
    try:
        bookmark = await bookmark_service.remove_tag(
            db, current_user.id, bookmark_id, tag_name,
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.post("/{bookmark_id}/trash", response_model=BookmarkResponse)
async def trash_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Move a bookmark to the trash."""
    try:
        bookmark = await bookmark_service.trash_bookmark(db, current_user.id, bookmark_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.post("/{bookmark_id}/restore", response_model=BookmarkResponse)
async def restore_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Restore a trashed bookmark; it comes back unfiled."""
    try:
        bookmark = await bookmark_service.restore_bookmark(db, current_user.id, bookmark_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Permanently delete a bookmark."""
    try:
        await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
