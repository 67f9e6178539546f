"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.
Each API request gets one session, which is also its transaction: every
multi-row status change commits or rolls back as a unit.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from src.config import settings
from src.domain.errors import ConcurrentModification

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=10,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


async def flush_or_conflict(session: AsyncSession) -> None:
    """Flush pending changes; a lost optimistic version check becomes a 409."""
    try:
        await session.flush()
    except StaleDataError as exc:
        raise ConcurrentModification(
            "Driver was modified by another session; reload and retry"
        ) from exc
