"""
Database engine and session management for the School Canteen API.

Uses SQLAlchemy async engine so order-store writes never block the event
loop. Local development runs on aiosqlite; the production store is the
Supabase Postgres database, reached through DATABASE_URL.
"""
import logging
import os

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

# Convert sqlite:///... → sqlite+aiosqlite:///... for async driver
_raw_url = settings.database_url
if _raw_url.startswith("sqlite:///"):
    _async_url = _raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
else:
    _async_url = _raw_url

engine = create_async_engine(
    _async_url,
    echo=False,
    future=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields an async session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def ping(session: AsyncSession) -> bool:
    """Round-trip a trivial query; used by the health probe."""
    await session.execute(text("SELECT 1"))
    return True


def sqlite_data_dir() -> str | None:
    """Directory that must exist before a file-backed SQLite engine connects."""
    if not _async_url.startswith("sqlite+aiosqlite:///"):
        return None
    path = _async_url.replace("sqlite+aiosqlite:///", "", 1)
    if path in ("", ":memory:"):
        return None
    return os.path.dirname(path) or None
