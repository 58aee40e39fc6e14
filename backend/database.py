"""
Async SQLAlchemy setup: declarative base, engine, sessions.

SQLite (aiosqlite) is the default store; a postgresql:// URL switches to
asyncpg. Conditional inserts in association_store pick the matching
dialect, so both backends keep the same upsert semantics.
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)

# Seconds a SQLite writer waits for a concurrent writer's lock
SQLITE_BUSY_TIMEOUT = 15


class Base(DeclarativeBase):
    pass


def to_async_url(raw_url: str) -> str:
    """sqlite:/// → sqlite+aiosqlite:///, postgresql:// → postgresql+asyncpg://."""
    if raw_url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + raw_url[len("sqlite:///"):]
    if raw_url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + raw_url[len("postgresql://"):]
    return raw_url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT}}
    return {"pool_pre_ping": True}


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite only enforces FOREIGN KEY clauses on connections that opt in."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


_url = to_async_url(settings.database_url)
engine = create_async_engine(_url, echo=False, **_engine_kwargs(_url))
if engine.dialect.name == "sqlite":
    enable_sqlite_foreign_keys(engine)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create missing tables (startup only; no migrations)."""
    import db_models  # noqa: F401  (registers the tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Tables ready on {engine.url.drivername}")


async def get_db() -> AsyncSession:
    """FastAPI dependency: one session per request."""
    async with async_session() as session:
        yield session
