"""FastAPI dependencies for injection."""
from core.auth import get_current_user
from core.change_feed import ChangeFeed, SnapshotLoader, get_change_feed
from core.config import get_settings
from db.session import get_async_session, get_session_factory
from services.snapshot_service import make_snapshot_loader


def get_snapshot_loader() -> SnapshotLoader:
    """Loader used by snapshot streams; each reload opens its own session."""
    return make_snapshot_loader(get_session_factory())


__all__ = [
    "ChangeFeed",
    "get_async_session",
    "get_change_feed",
    "get_current_user",
    "get_settings",
    "get_snapshot_loader",
]
