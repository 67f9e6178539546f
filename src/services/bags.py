"""
Bag ledger.

``drivers.bags_balance`` is the running balance; every change also appends a
``bag_movements`` row so the balance can be reconciled after the fact.
Balance changes are conditional single-statement UPDATEs, never
read-compute-write.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.enums import BagMovementReason
from src.domain.errors import BagReturnExceedsBalance, NotFound, ValidationFailure
from src.infrastructure.models import BagMovementModel, DriverModel
from src.infrastructure.repositories import BagMovementRepository, DriverRepository

logger = logging.getLogger(__name__)


async def add_bags(
    session: AsyncSession,
    driver_id: str,
    count: int,
    dispatch_record_id: Optional[str] = None,
) -> BagMovementModel:
    """Credit *count* bags to the driver (called when they are dispatched)."""
    if count <= 0:
        raise ValidationFailure("Bag count must be positive")
    drivers = DriverRepository(session)
    if not await drivers.adjust_bags(driver_id, count):
        raise NotFound(f"Driver {driver_id} not found")
    driver = await drivers.reload(driver_id)

    movement = await BagMovementRepository(session).add(
        BagMovementModel(
            driver_id=driver_id,
            delta=count,
            reason=BagMovementReason.DISPATCH,
            balance_after=driver.bags_balance,
            dispatch_record_id=dispatch_record_id,
        )
    )
    logger.info(
        "Driver %s took %d bags (balance %d)", driver_id, count, driver.bags_balance
    )
    return movement


async def return_bags(
    session: AsyncSession, driver_id: str, count: int
) -> tuple[DriverModel, BagMovementModel]:
    if count <= 0:
        raise ValidationFailure("Returned bag count must be positive")

    drivers = DriverRepository(session)
    driver = await drivers.get_by_id(driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")

    if not await drivers.adjust_bags(driver_id, -count):
        driver = await drivers.reload(driver_id)
        logger.warning(
            "Rejected return of %d bags for %s: balance is %d",
            count,
            driver.name,
            driver.bags_balance,
        )
        raise BagReturnExceedsBalance(
            f"Cannot return {count} bags; {driver.name} holds "
            f"{driver.bags_balance}"
        )

    driver = await drivers.reload(driver_id)
    movement = await BagMovementRepository(session).add(
        BagMovementModel(
            driver_id=driver_id,
            delta=-count,
            reason=BagMovementReason.RETURN,
            balance_after=driver.bags_balance,
        )
    )
    logger.info(
        "Driver %s returned %d bags (balance %d)",
        driver.name,
        count,
        driver.bags_balance,
    )
    return driver, movement


async def holders(session: AsyncSession) -> list[DriverModel]:
    return await DriverRepository(session).list_with_bags()


async def movements(session: AsyncSession, driver_id: str) -> list[BagMovementModel]:
    if await DriverRepository(session).get_by_id(driver_id) is None:
        raise NotFound(f"Driver {driver_id} not found")
    return await BagMovementRepository(session).list_for_driver(driver_id)
