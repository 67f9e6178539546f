"""
Redis-based distributed lock for queue-wide operations.

Start all, end shift, cancel all and the scheduled roster each rewrite many
dispatch rows at once, so they share a single ``lock:dispatch_queue`` key
across API processes; a second coordinator gets ``LockBusy`` (409) instead
of interleaving with the first.  Row-level correctness inside each operation
is still enforced by the database transaction and the driver version column.

Acquire is SET NX EX; release is a Lua check-and-delete so an operation that
outlived its TTL never frees a lock another process has since taken.
"""

from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis

from src.config import settings

logger = logging.getLogger(__name__)

QUEUE_LOCK = "dispatch_queue"

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockBusy(RuntimeError):
    """Another operation holds the lock."""

    def __init__(self, key: str):
        super().__init__(f"Could not acquire lock: {key}")
        self.key = key


class DistributedLock:
    def __init__(self, client: aioredis.Redis, name: str, ttl_seconds: int = 30):
        self.redis = client
        self.key = f"lock:{name}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())
        self.held = False

    async def acquire(self) -> bool:
        """Try once; True when this instance now owns the key."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )
        return self.held

    async def release(self) -> bool:
        """Delete the key if this instance still owns it."""
        released = bool(await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token))
        if self.held and not released:
            logger.warning(
                "Lock %s expired before release (ttl %ds)", self.key, self.ttl
            )
        self.held = False
        return released

    async def __aenter__(self):
        if not await self.acquire():
            raise LockBusy(self.key)
        return self

    async def __aexit__(self, *args):
        await self.release()


def queue_lock(client: aioredis.Redis) -> DistributedLock:
    """The lock shared by every queue-wide operation."""
    return DistributedLock(client, QUEUE_LOCK, ttl_seconds=settings.queue_lock_ttl_seconds)
