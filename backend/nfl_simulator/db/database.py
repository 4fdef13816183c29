"""
Database engine and session factory.

SQLite (the default) is used for local runs and tests; PostgreSQL through
asyncpg in deployment. The schema is created on startup, there are no
migrations.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.config import get_database_url, get_sql_echo
from .models import Base


def build_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Create an async engine for ``database_url`` (default: from the environment).

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    database_url = database_url or get_database_url()
    echo = get_sql_echo() if echo is None else echo

    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if database_url.endswith("://") or ":memory:" in database_url:
            options["poolclass"] = StaticPool
        return create_async_engine(database_url, echo=echo, **options)

    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
async_session_maker = build_session_maker(engine)


async def create_tables(bind: Optional[AsyncEngine] = None) -> None:
    """Create all database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(bind: Optional[AsyncEngine] = None) -> None:
    """Drop all database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for getting a database session.

    This is used as a dependency in route handlers.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
