"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models carry no
PostgreSQL-only column types, so the real metadata is created directly.
``FakeRedis`` implements just the commands sessions, locks and the event
bus issue.
"""

import json
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.infrastructure.database import Base
from src.infrastructure import models  # noqa: F401  (registers tables)


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"



class FakeRedis:
    """Dict-backed stand-in for the handful of Redis commands used."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}
        self.published: list[tuple[str, dict]] = []

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def get(self, key):
        return self.store.get(key)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def expire(self, key, seconds):
        if key not in self.store:
            return False
        self.ttls[key] = seconds
        return True

    async def eval(self, script, numkeys, *args):
        # Only the lock-release script is ever evaluated
        key, token = args[0], args[1]
        if self.store.get(key) == token:
            await self.delete(key)
            return 1
        return 0

    async def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))
        return 0

    def events(self) -> list[str]:
        return [payload["kind"] for _, payload in self.published]


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test, tables created from the models."""
    # One shared connection, otherwise every checkout sees an empty database
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
