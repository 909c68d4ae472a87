"""SQLite storage for options and attachments."""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from sharing_image.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = f"sqlite+aiosqlite:///{settings.DATABASE_PATH}"

# Concurrent option writes wait on the SQLite lock instead of failing
engine = create_async_engine(
    DATABASE_URL,
    echo=settings.DEBUG,
    connect_args={"timeout": 30},
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for the option and attachment tables."""


async def init_db() -> None:
    """Create the option and attachment tables if they are missing."""
    from sharing_image.models import attachment, option  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database ready at %s", settings.DATABASE_PATH)


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Stores commit their own writes."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
