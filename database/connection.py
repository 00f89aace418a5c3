"""
Async database engine and session management.

The module-level engine/session factory serve the running application.
Repositories never reach for them directly: they receive a session factory
at construction time, so tests and scripts can inject their own.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import get_settings

logger = logging.getLogger(__name__)


def create_engine_for_url(url: str, echo: bool = False, pool_size: int | None = None) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Pool sizing only applies to server databases; SQLite uses its own pool.
    """
    kwargs: dict = {"echo": echo}
    if not url.startswith("sqlite"):
        kwargs["pool_pre_ping"] = True
        if pool_size:
            kwargs["pool_size"] = pool_size
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to engine (objects stay usable after commit)."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


settings = get_settings()

engine = create_engine_for_url(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
)
AsyncSessionLocal = create_session_factory(engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the application session factory."""
    return AsyncSessionLocal


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    Open a session on the application engine.

    Usage:
        async with get_async_session() as session:
            await session.execute(...)
    """
    async with AsyncSessionLocal() as session:
        yield session
