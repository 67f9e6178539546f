"""
Administrative driver management.

Edits here are direct field writes and deliberately skip the lifecycle
state machine; the status value is still limited to the enum.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.enums import DriverStatus, VehicleType
from src.domain.errors import NotFound, ValidationFailure
from src.domain.roster import parse_driver_import
from src.infrastructure.database import flush_or_conflict
from src.infrastructure.models import DriverModel
from src.infrastructure.repositories import (
    BagMovementRepository,
    DispatchRecordRepository,
    DriverRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    line: str
    name: str
    action: str  # created | updated | error
    error: Optional[str] = None


async def list_drivers(session: AsyncSession) -> list[DriverModel]:
    return await DriverRepository(session).list_all()


async def get_driver(session: AsyncSession, driver_id: str) -> DriverModel:
    driver = await DriverRepository(session).get_by_id(driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")
    return driver


async def create_driver(
    session: AsyncSession, name: str, vehicle_type: Optional[VehicleType] = None
) -> DriverModel:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Driver name is required")
    driver = await DriverRepository(session).create(
        DriverModel(name=name, vehicle_type=vehicle_type, status=DriverStatus.INACTIVE)
    )
    logger.info("Admin created driver '%s' (%s)", name, driver.id)
    return driver


async def update_driver(
    session: AsyncSession,
    driver_id: str,
    *,
    name: Optional[str] = None,
    vehicle_type: Optional[VehicleType] = None,
    status: Optional[DriverStatus] = None,
    clear_device: bool = False,
    clear_vehicle_type: bool = False,
) -> DriverModel:
    driver = await DriverRepository(session).get_by_id_for_update(driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")

    if name is not None:
        if not name.strip():
            raise ValidationFailure("Driver name cannot be blank")
        driver.name = name.strip()
    if clear_vehicle_type:
        if vehicle_type is not None:
            raise ValidationFailure("Cannot set and clear the vehicle type together")
        driver.vehicle_type = None
    elif vehicle_type is not None:
        driver.vehicle_type = vehicle_type
    if status is not None:
        if status != DriverStatus(driver.status):
            logger.warning(
                "Admin override: driver '%s' %s -> %s",
                driver.name,
                DriverStatus(driver.status).value,
                status.value,
            )
        driver.status = status
    if clear_device:
        driver.device_id = None
    await flush_or_conflict(session)
    return driver


async def delete_driver(session: AsyncSession, driver_id: str) -> None:
    drivers = DriverRepository(session)
    driver = await drivers.get_by_id_for_update(driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")

    detached = await DispatchRecordRepository(session).detach_driver(driver.id)
    await BagMovementRepository(session).delete_for_driver(driver.id)
    await drivers.delete(driver)
    logger.info(
        "Admin deleted driver '%s'; %d records keep the name only",
        driver.name,
        detached,
    )


async def import_drivers(session: AsyncSession, text: str) -> list[ImportResult]:
    """Upsert drivers from ``name<TAB>vehicle`` lines, reporting per line."""
    parsed = parse_driver_import(text or "")
    if not parsed:
        raise ValidationFailure("Import contains no lines")

    drivers = DriverRepository(session)
    results: list[ImportResult] = []
    for line in parsed:
        if line.error:
            results.append(
                ImportResult(line=line.raw, name=line.name, action="error", error=line.error)
            )
            continue

        existing = await drivers.get_by_name(line.name)
        if existing is not None:
            existing.vehicle_type = line.vehicle_type
            action = "updated"
        else:
            await drivers.create(
                DriverModel(
                    name=line.name,
                    vehicle_type=line.vehicle_type,
                    status=DriverStatus.INACTIVE,
                )
            )
            action = "created"
        results.append(ImportResult(line=line.raw, name=line.name, action=action))

    await flush_or_conflict(session)
    errors = sum(1 for r in results if r.action == "error")
    logger.info("Driver import: %d lines, %d errors", len(results), errors)
    return results
