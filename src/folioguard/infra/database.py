"""Database session management.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) for local runs and tests.
"""

import logging
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from folioguard.app.config import get_settings
from folioguard.core import models  # noqa: F401  (registers tables on metadata)
from folioguard.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _create_engine(url: str, echo: bool) -> AsyncEngine:
    if url.startswith("sqlite"):
        if ":memory:" in url:
            # Single shared connection, otherwise every checkout sees an empty DB
            return create_async_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(url, echo=echo)

    settings = get_settings()
    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


async def init_db(
    database_url: str | None = None,
    echo: bool | None = None,
    create_tables: bool | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Initialize the engine and session factory.

    Args:
        database_url: Overrides DATABASE_URL
        echo: Overrides DATABASE_ECHO
        create_tables: Create tables from SQLModel metadata (default from config)

    Returns:
        The session factory bound to the new engine.
    """
    global _engine, _session_factory

    settings = get_settings()
    url = database_url or settings.database.url
    if echo is None:
        echo = settings.database.echo
    if create_tables is None:
        create_tables = settings.database.create_tables

    _engine = _create_engine(url, echo)
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    try:
        async with _engine.begin() as conn:
            if create_tables:
                await conn.run_sync(SQLModel.metadata.create_all)
            await conn.execute(text("SELECT 1"))
        logger.info(
            "Database connected",
            extra={
                "event": LogEvent.DB_CONNECTED,
                "database": url.split("@")[-1],  # Hide credentials
            },
        )
    except Exception as e:
        logger.error(
            "Database connection failed",
            extra={
                "event": LogEvent.DB_ERROR,
                "error_type": type(e).__name__,
                "error": str(e),
            },
        )
        raise

    return _session_factory


async def close_db() -> None:
    global _engine, _session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection closed")

