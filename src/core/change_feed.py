"""
In-process change feed that pushes full per-user snapshots to subscribers.

Services record which users a unit of work touched with mark_changed(); the
request session publishes those users only after its commit succeeds. Every
subscriber then reloads and yields one complete snapshot, so consumers never
observe partial state, and a rolled-back transaction leaves them on the last
good snapshot.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.exceptions import TransportError

if TYPE_CHECKING:
    from services.snapshot_service import Snapshot

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[str], Awaitable["Snapshot"]]

_CHANGED_USERS_KEY = "changed_user_ids"

# Queue signals
_REFRESH = True
_END = False


def mark_changed(db: AsyncSession, user_id: str) -> None:
    """Record that the current unit of work modified data owned by user_id."""
    db.info.setdefault(_CHANGED_USERS_KEY, set()).add(user_id)


def pop_changed_users(db: AsyncSession) -> set[str]:
    """Return and clear the users recorded on this session."""
    return db.info.pop(_CHANGED_USERS_KEY, set())


class Subscription:
    """
    Async iterator of full snapshots for one user.

    The first iteration yields the current snapshot. Each later iteration
    waits for a change notification and yields a freshly loaded snapshot;
    notifications that pile up while the consumer is busy collapse into one
    reload. Iteration stops when the session ends or the subscription is
    closed. A load failure is raised as TransportError and the subscription
    stays usable only if the consumer keeps iterating; nothing is retried.
    """

    def __init__(self, feed: "ChangeFeed", user_id: str, loader: SnapshotLoader) -> None:
        self.user_id = user_id
        self._feed = feed
        self._loader = loader
        self._queue: asyncio.Queue[bool] = asyncio.Queue()
        self._queue.put_nowait(_REFRESH)
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once the subscription has been closed or its session ended."""
        return self._closed

    def notify(self) -> None:
        """Signal that a newer snapshot is available."""
        if not self._closed:
            self._queue.put_nowait(_REFRESH)

    def end(self) -> None:
        """Signal end of stream (logout)."""
        if not self._closed:
            self._queue.put_nowait(_END)

    def close(self) -> None:
        """Stop the stream and detach from the feed."""
        if self._closed:
            return
        self._closed = True
        self._feed._detach(self)
        # Wake a consumer blocked in __anext__
        self._queue.put_nowait(_END)

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> "Snapshot":
        if self._closed:
            raise StopAsyncIteration

        signal = await self._queue.get()
        if signal is _END:
            self.close()
            raise StopAsyncIteration

        # Coalesce queued refreshes; keep a pending end-of-stream for next time
        ending = False
        while not self._queue.empty():
            if self._queue.get_nowait() is _END:
                ending = True
        if ending:
            self._queue.put_nowait(_END)

        try:
            return await self._loader(self.user_id)
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Snapshot load failed for user %s", self.user_id)
            raise TransportError() from e

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ChangeFeed:
    """Registry of live subscriptions keyed by user id."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, set[Subscription]] = defaultdict(set)

    def subscribe(self, user_id: str, loader: SnapshotLoader) -> Subscription:
        """Open a new subscription; its first item is the current snapshot."""
        subscription = Subscription(self, user_id, loader)
        self._subscriptions[user_id].add(subscription)
        logger.debug("Subscription opened for user %s", user_id)
        return subscription

    def publish(self, user_id: str) -> None:
        """Wake every subscriber of user_id after a committed change."""
        for subscription in list(self._subscriptions.get(user_id, ())):
            subscription.notify()

    def end_session(self, user_id: str) -> int:
        """Terminate every stream of user_id (logout). Returns how many ended."""
        subscriptions = self._subscriptions.pop(user_id, set())
        for subscription in subscriptions:
            subscription.end()
        if subscriptions:
            logger.info("Ended %d subscription(s) for user %s", len(subscriptions), user_id)
        return len(subscriptions)

    def subscriber_count(self, user_id: str) -> int:
        """Number of open subscriptions for user_id."""
        return len(self._subscriptions.get(user_id, ()))

    def _detach(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.user_id)
        if subscriptions is None:
            return
        subscriptions.discard(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.user_id]


_change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed."""
    return _change_feed
