"""Async SQLAlchemy session factory."""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.change_feed import get_change_feed, pop_changed_users
from core.config import Settings, get_settings


def _engine_options(settings: Settings) -> dict:
    """Pool options; SQLite uses a non-queue pool that rejects sizing arguments."""
    if settings.is_sqlite:
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=False,
    **_engine_options(settings),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker:
    """Return the session factory for services that need their own sessions."""
    return async_session_factory


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. This makes every request one
    atomic batch - if anything fails, all changes are rolled back and no
    snapshot is published. Subscribers of users touched by the request are
    notified only after the commit succeeds.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            pop_changed_users(session)
            raise
        feed = get_change_feed()
        for user_id in pop_changed_users(session):
            feed.publish(user_id)
