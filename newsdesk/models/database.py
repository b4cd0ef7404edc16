"""
Async database session factory.

Uses SQLAlchemy 2.0 async engine with asyncpg (Postgres) or aiosqlite (dev).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator  # noqa: TC003

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from newsdesk.core.config import get_settings
from newsdesk.models.models import Base

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create tables that don't exist yet (dev / SQLite convenience)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency — yields an async DB session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
