"""
Database session management.
Provides async SQLAlchemy engine, session factory, and lifecycle functions.
"""
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from summarizer.core.config import get_settings
from summarizer.database.base import Base

# Global engine instance (initialized lazily)
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def ensure_sqlite_directory(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(database_url: Optional[str] = None) -> None:
    """
    Initialize the database engine and session factory.
    Called once at application startup.

    The job log tables are created here unless database_create_tables is
    off, in which case the schema is expected to come from `alembic upgrade head`.
    """
    global _engine, _async_session_factory

    settings = get_settings()
    url = database_url or settings.get_database_url()
    ensure_sqlite_directory(url)

    _engine = create_async_engine(url, echo=settings.database_echo)

    _async_session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    if not settings.database_create_tables:
        return

    # Register models on Base.metadata before create_all
    import summarizer.database.models  # noqa: F401

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Close the database engine and cleanup resources.
    Called once at application shutdown.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the async session factory."""
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _async_session_factory
