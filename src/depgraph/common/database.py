"""Async SQLAlchemy database configuration and session management.

Provides async engine, session factory, and dependency injection for FastAPI.
Uses asyncpg for PostgreSQL with connection pooling; SQLite (aiosqlite) is
supported for development and tests.
"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from depgraph.common.config import Settings, get_settings
from depgraph.common.logging import get_logger

logger = get_logger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


@dataclass
class DatabaseInitResult:
    """Outcome of database initialization, inspected before serving traffic."""

    ok: bool
    url: str
    error: str | None = None


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create async SQLAlchemy engine.

    Args:
        settings: Application settings. Uses global settings if not provided.

    Returns:
        Configured async engine instance.
    """
    if settings is None:
        settings = get_settings()

    db_settings = settings.database
    url = db_settings.async_url

    engine_kwargs: dict[str, Any] = {"echo": db_settings.echo}

    if db_settings.is_sqlite:
        # In-memory SQLite lives on a single connection
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": db_settings.command_timeout,
        }
    else:
        engine_kwargs["connect_args"] = {
            "server_settings": {"application_name": settings.app_name},
            "command_timeout": db_settings.command_timeout,
        }
        if settings.environment == "development":
            engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs["pool_size"] = db_settings.pool_size
            engine_kwargs["max_overflow"] = db_settings.max_overflow
            engine_kwargs["pool_timeout"] = db_settings.pool_timeout
            engine_kwargs["pool_recycle"] = db_settings.pool_recycle
            engine_kwargs["pool_pre_ping"] = True

    engine = create_async_engine(url, **engine_kwargs)

    if db_settings.is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: object) -> None:
            """Enforce foreign keys on every SQLite connection."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create async session factory for database operations."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all graph tables that do not exist yet.

    Production deployments run the Alembic migrations instead.
    """
    from depgraph.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(
    settings: Settings | None = None,
    create_tables: bool = False,
) -> DatabaseInitResult:
    """Initialize database engine and session factory.

    Never raises on connection failure; the caller inspects the result
    and decides whether to serve traffic.

    Args:
        settings: Application settings. Uses global settings if not provided.
        create_tables: Create missing tables after connecting.

    Returns:
        Initialization result.
    """
    global _engine, _session_factory

    if settings is None:
        settings = get_settings()
    url = settings.database.async_url.split("@")[-1]

    if _engine is None:
        _engine = create_engine(settings)
        _session_factory = create_session_factory(_engine)

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        if create_tables:
            await create_schema(_engine)
    except Exception as e:
        logger.error("Database initialization failed", url=url, error=str(e))
        return DatabaseInitResult(ok=False, url=url, error=str(e))

    return DatabaseInitResult(ok=True, url=url)


async def close_database() -> None:
    """Close database engine and cleanup connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Get the global database engine.

    Raises:
        RuntimeError: If database not initialized.
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the global session factory.

    Raises:
        RuntimeError: If database not initialized.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database session injection."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
