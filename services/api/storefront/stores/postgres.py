"""PostgreSQL store (async SQLAlchemy + asyncpg).

The API opens one engine at startup and hands out short-lived sessions:
every unit of work commits on success and rolls back on any error.

Callers that can degrade (season lookup, product and shipping reads) catch
SQLAlchemyError/OSError, plus RuntimeError for "never initialized", which is
the normal state in tests and when Postgres was down at startup.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from storefront.settings import get_settings

logger = logging.getLogger("uvicorn.error")


class Base(DeclarativeBase):
    """Declarative base shared by all storefront tables."""


_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


NOT_INITIALIZED = "Postgres is not initialized; call init_db() at startup."


def _require_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(NOT_INITIALIZED)
    return _engine


async def init_db() -> None:
    """Create the engine and session factory (no-op when already initialized)."""
    global _engine, _sessionmaker
    if _engine is not None:
        return

    settings = get_settings()
    _engine = create_async_engine(
        settings.async_database_url,
        echo=settings.debug,
        connect_args=settings.asyncpg_connect_args,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    # Rows are read after commit (ShippingQuote.from_row etc.), keep them loaded.
    _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)


async def ping_db() -> None:
    """SELECT 1 so a bad DATABASE_URL shows up in the startup logs."""
    async with _require_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the pool; safe to call when init_db() never ran."""
    global _engine, _sessionmaker
    engine, _engine, _sessionmaker = _engine, None, None
    if engine is not None:
        await engine.dispose()
        logger.info("Postgres pool closed")


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Transactional session scope.

    Usage:
        async with get_session() as session:
            rows = (await session.execute(stmt)).scalars().all()

    Raises:
        RuntimeError: init_db() has not run.
    """
    if _sessionmaker is None:
        raise RuntimeError(NOT_INITIALIZED)

    async with _sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
