"""Filtered bookmark views (All, Favorites, Recent, Trash, folder, tag)."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import DOMAIN_ERRORS, to_http_exception
from models.user import User
from schemas.bookmark import BookmarkResponse
from schemas.snapshot import ViewResponse
from services.snapshot_service import load_snapshot
from services.view_filter import RecentWindow, filter_bookmarks, parse_location

router = APIRouter(prefix="/views", tags=["views"])


@router.get("/bookmarks", response_model=ViewResponse)
async def view_bookmarks(
    location: str = Query(
        default="all",
        description="all, favorites, recent, trash, tags, folder:<id> or tag:<name>",
    ),
    q: str | None = Query(
        default=None,
        description="Search text (matches title, url, text, notes and tags)",
    ),
    window: RecentWindow = Query(
        default=RecentWindow.DAY,
        description="Timeframe for the recent view",
    ),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ViewResponse:
    """Bookmarks visible at a location, newest first."""
    try:
        parsed = parse_location(location)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    snapshot = await load_snapshot(db, current_user.id)
    items = filter_bookmarks(snapshot, parsed, search=q, window=window)
    return ViewResponse(
        location=str(parsed),
        items=[BookmarkResponse.model_validate(b) for b in items],
        total=len(items),
    )
