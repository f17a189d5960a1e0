"""
Database Connection Module
Handles the async SQLAlchemy engine (psycopg on PostgreSQL, aiosqlite for tests).
"""

import logging
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from qrdine.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def build_engine(url: str, echo: bool = False, pooled: bool = True) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite files and worker processes get a NullPool; PostgreSQL gets a
    small connection pool.
    """
    if url.startswith("sqlite") or not pooled:
        return create_async_engine(url, echo=echo, poolclass=NullPool)

    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,  # Connection pool size
        max_overflow=10,  # Extra connections when pool is full
        pool_pre_ping=True,
    )


engine = build_engine(settings.database_url, echo=settings.db_echo)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """
    Dependency returning the session factory used by background work
    (notification delivery) that outlives the request session.
    """
    return async_session_maker


def create_worker_session_factory() -> tuple[AsyncEngine, async_sessionmaker]:
    """
    Engine and session factory for Celery tasks.

    Each task runs its own event loop, so connections are never pooled
    across tasks.
    """
    worker_engine = build_engine(settings.database_url, pooled=False)
    factory = async_sessionmaker(
        bind=worker_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return worker_engine, factory


async def init_db() -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register every model on Base.metadata
    import qrdine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
