"""
RecipeBox — Database
====================

What:  The async engine, the session factory, the declarative Base and the
       per-request session dependency.

    postgres  → postgresql+asyncpg, pooled, tsvector full-text search
    sqlite    → sqlite+aiosqlite, LIKE search, foreign keys switched on for
                every connection (SQLite ignores ON DELETE CASCADE otherwise)
"""

import logging
from pathlib import Path
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from recipebox.config import settings

logger = logging.getLogger(__name__)


def _engine_options(driver: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if driver == "postgres":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, driver: str) -> AsyncEngine:
    """Create an async engine with driver-specific pool and connection setup."""
    new_engine = create_async_engine(url, **_engine_options(driver))
    if driver == "sqlite":
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


def ensure_sqlite_directory(url: str) -> None:
    """SQLite won't create the parent folder of its database file."""
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine(settings.database_url, settings.resolved_database_driver)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


def dialect_name(db: AsyncSession) -> str:
    """Name of the dialect the session is bound to ('postgresql' or 'sqlite')."""
    return db.get_bind().dialect.name


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session and one transaction per request: committed when the handler
    returns, rolled back when it raises. A recipe update that rewrites its
    tags therefore lands whole or not at all.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
@retry(
    retry=retry_if_exception_type((OperationalError, OSError)),
    stop=stop_after_attempt(settings.db_connect_attempts),
    wait=wait_exponential(multiplier=1, max=settings.db_connect_max_wait),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def wait_for_database() -> None:
    """SELECT 1 until it succeeds; a Postgres container just started refuses connections."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_database() -> None:
    """
    Wait for the database, then create whichever tables are missing.
    Changes to existing tables go through the Alembic migrations.
    """
    # Register every model on Base.metadata
    import recipebox.models  # noqa: F401

    if settings.resolved_database_driver == "sqlite":
        ensure_sqlite_directory(settings.database_url)

    await wait_for_database()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database ready (%s)", settings.resolved_database_driver)


async def dispose_engine() -> None:
    await engine.dispose()
