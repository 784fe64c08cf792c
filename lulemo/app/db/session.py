# lulemo/app/db/session.py
"""
Engine and session factory for the account database.

Production runs on PostgreSQL through asyncpg; local runs and tests use a
SQLite file through aiosqlite, which gets no connection pool.

Every request gets its own session; nothing else is shared between requests,
so per-user races are settled by the database's single-row updates.
"""
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from lulemo.app.core.config import settings


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build the engine for `database_url`, picking pool settings by backend.

    SQLite:
    - NullPool (one connection per session)
    - connections may hop threads under aiosqlite

    PostgreSQL:
    - AsyncAdaptedQueuePool, pool_size=5, max_overflow=10
    - pool_pre_ping=True, pool_recycle=300
    """
    if "sqlite" in database_url.lower():
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )

    return create_async_engine(
        database_url,
        echo=echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def create_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: attributes stay readable after commit
    # autoflush=False: explicit flush control
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Global async engine and session factory, created once at module load
# ─────────────────────────────────────────────────────────────────────────────
engine: AsyncEngine = create_engine_for(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

AsyncSessionLocal: async_sessionmaker[AsyncSession] = create_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield one session per request. Nothing is committed here; the services
    commit once their writes are complete.
    """
    async with AsyncSessionLocal() as session:
        yield session
