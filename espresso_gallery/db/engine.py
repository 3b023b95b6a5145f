"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from espresso_gallery.config import settings


def create_engine_instance(url: str | None = None) -> AsyncEngine:
    """Create async SQLAlchemy engine.

    In-memory SQLite must share a single connection (StaticPool) or every
    checkout sees an empty database. File-backed SQLite opens a connection per
    session (NullPool) so connections never outlive the event loop they were
    created on.
    """
    url = url or settings.database_url
    kwargs: dict[str, Any] = {}

    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool if ":memory:" in url else NullPool

    return create_async_engine(url, echo=settings.database_echo, **kwargs)


engine = create_engine_instance()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional scope for database operations."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
