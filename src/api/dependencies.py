"""FastAPI dependency injection helpers."""

from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.enums import UserRole
from src.infrastructure.database import async_session_factory
from src.infrastructure.events import EventBus
from src.infrastructure.redis_client import get_redis
from src.infrastructure.sessions import Session, SessionStore
from src.infrastructure.storage import SelfieStorage


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session_store(
    redis: aioredis.Redis = Depends(get_redis),
) -> SessionStore:
    return SessionStore(redis, ttl_seconds=settings.session_ttl_seconds)


async def get_event_bus(redis: aioredis.Redis = Depends(get_redis)) -> EventBus:
    return EventBus(redis, settings.events_channel)


def get_storage() -> SelfieStorage:
    return SelfieStorage(
        settings.selfie_dir,
        settings.selfie_bucket,
        settings.public_base_url,
        max_bytes=settings.selfie_max_bytes,
    )


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_role(*roles: UserRole):
    """Guard a route; an admin session also satisfies coordinator routes."""
    allowed = set(roles) | {UserRole.ADMIN}

    async def _guard(
        token: Optional[str] = Depends(bearer_token),
        store: SessionStore = Depends(get_session_store),
    ) -> Session:
        if token is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        session = await store.get(token)
        if session is None:
            raise HTTPException(status_code=401, detail="Session expired")
        if session.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return session

    return _guard


require_coordinator = require_role(UserRole.COORDINATOR)
require_admin = require_role(UserRole.ADMIN)
