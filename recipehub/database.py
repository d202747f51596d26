"""
RecipeHub Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   The engine is created once per process (on first use or by the
       lifespan handler) and disposed on shutdown. Each request gets its own
       session that commits on success and rolls back on error.
Who:   Route handlers receive sessions via FastAPI's dependency injection;
       the IdAllocator opens its own short sessions from the same factory.

Connection Pooling:
    PostgreSQL (asyncpg): pool_size / max_overflow / pre_ping from settings,
    connections recycled hourly.
    SQLite (aiosqlite): SQLAlchemy's default pool for the dialect; pool sizing
    arguments are not passed.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from recipehub.config import settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for migrations and the
    test suite uses for `create_all`.
    """
    pass


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": settings.log_level == "DEBUG"}
    if make_url(url).get_backend_name() != "sqlite":
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return kwargs


def init_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the process-wide engine and session factory.

    Idempotent: a second call returns the existing engine. Pass an explicit
    URL to override `settings.database_url` (used by tests).
    """
    global _engine, _session_factory
    if _engine is not None:
        return _engine

    url = database_url or settings.database_url
    if not url:
        raise RuntimeError("DATABASE_URL is not configured")

    _engine = create_async_engine(url, **_engine_kwargs(url))
    # expire_on_commit=False: objects stay readable after the request commits
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return _engine


def get_engine() -> AsyncEngine:
    return _engine if _engine is not None else init_engine()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        init_engine()
    return _session_factory


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)

    Background tasks registered by the handler run after this commit, so
    media cleanup only happens once the database change is durable.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables() -> None:
    """Create all tables from model metadata (development and tests; production uses Alembic)."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Closes all pooled connections and forgets the engine.
    When:  Called during application shutdown (lifespan handler) and test teardown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
