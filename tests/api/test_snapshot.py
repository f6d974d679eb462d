"""Tests for snapshot endpoints and the server-sent event stream."""
import json

from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from api.routers.snapshot import snapshot_events
from core.change_feed import ChangeFeed
from models.bookmark import BookmarkType
from services.snapshot_service import BookmarkRecord, FolderRecord, Snapshot


def _parse_event(raw: str) -> tuple[str, dict]:
    event_line, data_line = raw.strip().split("\n")
    assert event_line.startswith("event: ")
    assert data_line.startswith("data: ")
    return event_line[len("event: "):], json.loads(data_line[len("data: "):])


async def _loader(_user_id: str) -> Snapshot:
    return Snapshot(
        bookmarks=(BookmarkRecord(id="b1", type=BookmarkType.LINK, url="https://a.com"),),
        folders=(FolderRecord(id="f1", name="Reading"),),
    )


# =============================================================================
# GET /snapshot/ and logout
# =============================================================================


async def test_get_snapshot(client: AsyncClient) -> None:
    """Test the one-shot snapshot read."""
    folder = (await client.post("/folders/", json={"name": "Reading"})).json()
    first = (await client.post("/bookmarks/", json={"url": "https://a.com"})).json()
    second = (await client.post(
        "/bookmarks/", json={"url": "https://b.com", "folder_id": folder["id"]},
    )).json()

    response = await client.get("/snapshot/")
    assert response.status_code == 200
    data = response.json()
    assert [b["id"] for b in data["bookmarks"]] == [second["id"], first["id"]]
    assert [f["id"] for f in data["folders"]] == [folder["id"]]


async def test_get_snapshot_empty(client: AsyncClient) -> None:
    """Test the snapshot of a user with no data."""
    response = await client.get("/snapshot/")
    assert response.json() == {"bookmarks": [], "folders": []}


async def test_logout(client: AsyncClient) -> None:
    """Test that logout answers 204 with no open streams."""
    response = await client.post("/session/logout")
    assert response.status_code == 204


# =============================================================================
# snapshot_events
# =============================================================================


async def test_snapshot_events_first_event_is_current_snapshot() -> None:
    """Test that the stream starts with the whole current snapshot."""
    feed = ChangeFeed()
    events = snapshot_events(feed.subscribe("u1", _loader))

    event, data = _parse_event(await anext(events))
    await events.aclose()

    assert event == "snapshot"
    assert [b["id"] for b in data["bookmarks"]] == ["b1"]
    assert [f["name"] for f in data["folders"]] == ["Reading"]
    assert feed.subscriber_count("u1") == 0


async def test_snapshot_events_publish_sends_new_snapshot() -> None:
    """Test that a publish produces another snapshot event."""
    feed = ChangeFeed()
    events = snapshot_events(feed.subscribe("u1", _loader))
    await anext(events)

    feed.publish("u1")
    event, _ = _parse_event(await anext(events))
    await events.aclose()

    assert event == "snapshot"


async def test_snapshot_events_logout_sends_empty_snapshot_then_ends() -> None:
    """Test that ending the session clears the client and closes the stream."""
    feed = ChangeFeed()
    events = snapshot_events(feed.subscribe("u1", _loader))
    await anext(events)

    feed.end_session("u1")
    remaining = [_parse_event(raw) async for raw in events]

    assert remaining == [("snapshot", {"bookmarks": [], "folders": []})]
    assert feed.subscriber_count("u1") == 0


async def test_snapshot_events_load_failure_sends_error() -> None:
    """Test that a storage failure ends the stream with one error event."""
    feed = ChangeFeed()

    async def failing_loader(_user_id: str) -> Snapshot:
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    events = [_parse_event(raw) async for raw in snapshot_events(
        feed.subscribe("u1", failing_loader),
    )]

    assert len(events) == 1
    event, data = events[0]
    assert event == "error"
    assert data["detail"]
    assert feed.subscriber_count("u1") == 0
