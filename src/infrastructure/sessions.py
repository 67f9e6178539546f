"""
Server-side login sessions kept in Redis.

A token is an opaque random string; ``session:<token>`` holds the role and
login time and expires after ``session_ttl_seconds``.  Coordinators may
extend their session while they work the queue; admin sessions only
expire.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis

from src.domain.enums import UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    token: str
    role: UserRole
    logged_in_at: float


class SessionStore:
    def __init__(self, client: aioredis.Redis, ttl_seconds: int = 600):
        self.redis = client
        self.ttl = ttl_seconds

    @staticmethod
    def _key(token: str) -> str:
        return f"session:{token}"

    async def create(self, role: UserRole) -> Session:
        token = secrets.token_urlsafe(32)
        session = Session(token=token, role=role, logged_in_at=time.time())
        payload = json.dumps({"role": role.value, "logged_in_at": session.logged_in_at})
        await self.redis.set(self._key(token), payload, ex=self.ttl)
        logger.info("Session opened for role=%s", role.value)
        return session

    async def get(self, token: str) -> Optional[Session]:
        raw = await self.redis.get(self._key(token))
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return Session(
                token=token,
                role=UserRole(data["role"]),
                logged_in_at=float(data["logged_in_at"]),
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding malformed session payload")
            await self.revoke(token)
            return None

    async def extend(self, token: str) -> bool:
        session = await self.get(token)
        if session is None or session.role != UserRole.COORDINATOR:
            return False
        return bool(await self.redis.expire(self._key(token), self.ttl))

    async def revoke(self, token: str) -> None:
        await self.redis.delete(self._key(token))
