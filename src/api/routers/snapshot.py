"""Snapshot endpoints: one-shot read, live stream, and logout."""
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    ChangeFeed,
    get_async_session,
    get_change_feed,
    get_current_user,
    get_snapshot_loader,
)
from core.change_feed import SnapshotLoader, Subscription
from models.user import User
from schemas.bookmark import BookmarkResponse
from schemas.folder import FolderResponse
from schemas.snapshot import SnapshotResponse
from services.exceptions import TransportError
from services.snapshot_service import EMPTY_SNAPSHOT, Snapshot, load_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["snapshot"])


def snapshot_to_response(snapshot: Snapshot) -> SnapshotResponse:
    """Serialize a snapshot for the API."""
    return SnapshotResponse(
        bookmarks=[BookmarkResponse.model_validate(b) for b in snapshot.bookmarks],
        folders=[FolderResponse.model_validate(f) for f in snapshot.folders],
    )


def _sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


async def snapshot_events(subscription: Subscription) -> AsyncGenerator[str]:
    """
    Render a subscription as server-sent events.

    Every snapshot goes out whole as one 'snapshot' event. A load failure sends
    one 'error' event and ends the stream; the client may reconnect. When the
    session ends an empty snapshot is sent before the stream closes.
    """
    async with subscription:
        while True:
            try:
                snapshot = await anext(subscription)
            except StopAsyncIteration:
                break
            except TransportError as e:
                yield _sse("error", json.dumps({"detail": str(e)}))
                return
            yield _sse("snapshot", snapshot_to_response(snapshot).model_dump_json())
    yield _sse("snapshot", snapshot_to_response(EMPTY_SNAPSHOT).model_dump_json())


@router.get("/snapshot/", response_model=SnapshotResponse)
async def get_snapshot(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> SnapshotResponse:
    """All bookmarks (newest first) and folders (oldest first) in one read."""
    return snapshot_to_response(await load_snapshot(db, current_user.id))


@router.get("/snapshot/stream")
async def stream_snapshot(
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
) -> StreamingResponse:
    """
    Stream the current snapshot, then a new one after every committed change.

    The stream ends when the user logs out.
    """
    subscription = feed.subscribe(current_user.id, loader)
    return StreamingResponse(
        snapshot_events(subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/session/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
) -> None:
    """End every live snapshot stream of the current user."""
    ended = feed.end_session(current_user.id)
    logger.info("User %s logged out; %d stream(s) closed", current_user.id, ended)
