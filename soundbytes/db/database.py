"""
Async SQLAlchemy database setup.

Supports PostgreSQL (production) and SQLite (development).
"""
from __future__ import annotations

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from soundbytes.config import settings as settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


# Global engine and session factory (initialized on startup)
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_database_url() -> str:
    """Get the database URL from settings."""
    url = settings.database_url
    if not url:
        # Default to SQLite for development
        url = "sqlite+aiosqlite:///./soundbytes.db"
        logger.warning(f"No database URL configured, using SQLite: {url}")
    return url


def configure_sqlite_engine(engine: AsyncEngine) -> None:
    """Make SAVEPOINT work on aiosqlite and enforce foreign keys.

    The sqlite3 driver opens transactions lazily and on its own terms, which
    breaks ``session.begin_nested()``. Take over: disable the driver's
    implicit BEGIN and emit our own when SQLAlchemy starts a transaction.
    SQLite leaves foreign keys off per connection unless asked.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


async def init_db() -> None:
    """Initialize database engine and session factory.

    Tables are created on startup when missing; there is no migration
    history to replay for this schema.
    """
    global _engine, _async_session_factory

    database_url = get_database_url()
    logger.info(f"Initializing database: {database_url.split('@')[-1] if '@' in database_url else database_url}")

    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    _engine = create_async_engine(
        database_url,
        echo=settings.debug,
        connect_args=connect_args,
    )
    if database_url.startswith("sqlite"):
        configure_sqlite_engine(_engine)

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import models so they register with Base before create_all.
    from soundbytes.db import models  # noqa: F401

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized successfully")


async def close_db() -> None:
    """Close database connection."""
    global _engine, _async_session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    Usage:
        @router.get("/sound-bytes")
        async def list_sound_bytes(db: AsyncSession = Depends(get_db)):
            ...
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
