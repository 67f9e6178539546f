"""
Dispatch event bus over Redis pub/sub.

Services publish one JSON message per state change on
``settings.events_channel``; the SSE endpoint relays them to dashboards.
Publishing is fire-and-forget: a Redis outage is logged and never undoes a
committed transition.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    async def publish(self, kind: str, **payload: Any) -> None:
        message = json.dumps(
            {
                "kind": kind,
                "at": datetime.now(timezone.utc).isoformat(),
                **payload,
            },
            default=str,
        )
        try:
            await self.redis.publish(self.channel, message)
        except RedisError:
            logger.exception("Failed to publish %s event", kind)

    async def listen(self) -> AsyncIterator[str]:
        """Yield raw JSON messages until the consumer stops iterating."""
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    yield message["data"]
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
