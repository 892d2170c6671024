# backend/tracking/core/database.py
"""Database engine and session management.

Supports PostgreSQL (asyncpg) and SQLite (aiosqlite); the driver is picked
from the scheme of DATABASE_URL.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from tracking.core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_engine_for_url(db_url: str):
    """Create an async engine matching the URL scheme."""
    if db_url.startswith("postgresql://") or db_url.startswith("postgresql+asyncpg://"):
        if not db_url.startswith("postgresql+asyncpg://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

        logger.info(f"Using PostgreSQL database: {db_url.split('@')[-1]}")
        return create_async_engine(
            db_url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            echo=False,
        )

    elif db_url.startswith("sqlite://") or db_url.startswith("sqlite+aiosqlite://"):
        # Development and tests
        if not db_url.startswith("sqlite+aiosqlite://"):
            db_url = db_url.replace("sqlite://", "sqlite+aiosqlite://")
        logger.info(f"Using SQLite database: {db_url}")
        return create_async_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,  # every session gets its own connection
        )

    else:
        raise ValueError(f"Unsupported database URL scheme: {db_url}")


engine = create_engine_for_url(settings.effective_database_url)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    async with async_session() as session:
        yield session
