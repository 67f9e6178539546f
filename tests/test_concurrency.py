"""
Concurrency safety tests.

Demonstrates:
1. The driver version column turns a lost update into ``ConcurrentModification``.
2. Bag withdrawals are conditional, so the balance never goes negative.
3. Distributed lock prevents simultaneous acquire.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import update

from src.config import settings
from src.domain.enums import DriverStatus
from src.domain.errors import ConcurrentModification
from src.infrastructure.database import flush_or_conflict
from src.infrastructure.locks import DistributedLock, LockBusy, queue_lock
from src.infrastructure.models import DriverModel
from src.infrastructure.repositories import DriverRepository


async def _driver(session, **kwargs) -> DriverModel:
    driver = DriverModel(name=kwargs.pop("name", "Camila"), **kwargs)
    session.add(driver)
    await session.flush()
    return driver


class TestOptimisticVersioning:
    @pytest.mark.asyncio
    async def test_stale_write_is_rejected(self, db_session):
        driver = await _driver(db_session)

        # Another transaction bumps the row behind the identity map's back
        await db_session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver.id)
            .values(version=DriverModel.version + 1)
            .execution_options(synchronize_session=False)
        )

        driver.status = DriverStatus.WAITING
        with pytest.raises(ConcurrentModification):
            await flush_or_conflict(db_session)

    @pytest.mark.asyncio
    async def test_version_increments_on_write(self, db_session):
        driver = await _driver(db_session)
        before = driver.version

        driver.status = DriverStatus.WAITING
        await flush_or_conflict(db_session)
        assert driver.version == before + 1


class TestConditionalBagUpdate:
    @pytest.mark.asyncio
    async def test_withdrawal_within_balance(self, db_session):
        driver = await _driver(db_session, bags_balance=5)
        repo = DriverRepository(db_session)

        assert await repo.adjust_bags(driver.id, -3) is True
        assert (await repo.reload(driver.id)).bags_balance == 2

    @pytest.mark.asyncio
    async def test_withdrawal_beyond_balance_matches_nothing(self, db_session):
        driver = await _driver(db_session, bags_balance=2)
        repo = DriverRepository(db_session)

        assert await repo.adjust_bags(driver.id, -3) is False
        assert (await repo.reload(driver.id)).bags_balance == 2

    @pytest.mark.asyncio
    async def test_second_withdrawal_sees_first(self, db_session):
        driver = await _driver(db_session, bags_balance=4)
        repo = DriverRepository(db_session)

        assert await repo.adjust_bags(driver.id, -3) is True
        assert await repo.adjust_bags(driver.id, -3) is False
        assert (await repo.reload(driver.id)).bags_balance == 1

    @pytest.mark.asyncio
    async def test_adjust_bumps_version(self, db_session):
        driver = await _driver(db_session)
        before = driver.version
        repo = DriverRepository(db_session)

        await repo.adjust_bags(driver.id, 2)
        reloaded = await repo.reload(driver.id)
        assert reloaded.version == before + 1

        # The reloaded copy is current, so a later ORM write still flushes
        reloaded.status = DriverStatus.WAITING
        await flush_or_conflict(db_session)

    @pytest.mark.asyncio
    async def test_unknown_driver(self, db_session):
        assert await DriverRepository(db_session).adjust_bags("missing", 1) is False


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "dispatch_queue", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:dispatch_queue", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "dispatch_queue", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "dispatch_queue", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "dispatch_queue", ttl_seconds=10)
        with pytest.raises(LockBusy, match="Could not acquire lock"):
            async with lock:
                pass

    @pytest.mark.asyncio
    async def test_second_holder_is_refused(self, fake_redis):
        first = DistributedLock(fake_redis, "dispatch_queue")
        second = DistributedLock(fake_redis, "dispatch_queue")

        async with first:
            assert await second.acquire() is False
        assert await second.acquire() is True

    @pytest.mark.asyncio
    async def test_release_does_not_free_foreign_lock(self, fake_redis):
        owner = DistributedLock(fake_redis, "dispatch_queue")
        other = DistributedLock(fake_redis, "dispatch_queue")

        await owner.acquire()
        await other.release()
        assert fake_redis.store["lock:dispatch_queue"] == owner.token

    @pytest.mark.asyncio
    async def test_busy_error_names_the_key(self, fake_redis):
        await DistributedLock(fake_redis, "dispatch_queue").acquire()
        with pytest.raises(LockBusy) as exc_info:
            async with DistributedLock(fake_redis, "dispatch_queue"):
                pass
        assert exc_info.value.key == "lock:dispatch_queue"

    @pytest.mark.asyncio
    async def test_expired_lock_is_reported_on_release(self, fake_redis):
        lock = DistributedLock(fake_redis, "dispatch_queue")
        await lock.acquire()
        # TTL ran out and another process took the key
        fake_redis.store["lock:dispatch_queue"] = "someone-else"

        assert await lock.release() is False
        assert lock.held is False
        assert fake_redis.store["lock:dispatch_queue"] == "someone-else"

    def test_queue_lock_uses_configured_ttl(self, fake_redis, monkeypatch):
        monkeypatch.setattr(settings, "queue_lock_ttl_seconds", 45)
        lock = queue_lock(fake_redis)
        assert lock.key == "lock:dispatch_queue"
        assert lock.ttl == 45
