"""
Dispatch queue views and scheduling.

The queue is a total order by ``start_time`` ascending within the active
statuses; there is no priority structure.  A scheduled roster pre-creates
``pending`` records for a local day at ``settings.roster_start_hour``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import (
    ensure_dispatch_transition,
    ensure_driver_transition,
    is_terminal,
)
from src.domain.enums import (
    ACTIVE_DISPATCH_STATUSES,
    DispatchStatus,
    DriverStatus,
    VehicleType,
)
from src.domain.errors import NotFound, ValidationFailure
from src.domain.ranking import local_midnight
from src.domain.roster import scheduled_times, split_roster
from src.infrastructure.database import flush_or_conflict
from src.infrastructure.models import DispatchRecordModel, DriverModel, utcnow
from src.infrastructure.repositories import DispatchRecordRepository, DriverRepository

logger = logging.getLogger(__name__)


@dataclass
class QueueEntry:
    record: DispatchRecordModel
    vehicle_type: Optional[VehicleType]


@dataclass
class RosterResult:
    day: date
    replaced: int
    scheduled: list[DispatchRecordModel] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


async def active_queue(
    session: AsyncSession,
    status: Optional[DispatchStatus] = None,
    vehicle_type: Optional[VehicleType] = None,
) -> list[QueueEntry]:
    if status is not None and status not in ACTIVE_DISPATCH_STATUSES:
        raise ValidationFailure(
            f"Queue filter must be one of: "
            f"{', '.join(s.value for s in ACTIVE_DISPATCH_STATUSES)}"
        )
    statuses = (status,) if status is not None else ACTIVE_DISPATCH_STATUSES
    rows = await DispatchRecordRepository(session).get_queue(statuses, vehicle_type)
    return [QueueEntry(record=record, vehicle_type=vt) for record, vt in rows]


async def _follow_record(session: AsyncSession, record: DispatchRecordModel) -> None:
    """Move the record's driver to the status its remaining records imply."""
    driver = await DriverRepository(session).get_by_id_for_update(record.driver_id)
    if driver is None:
        return
    current = DriverStatus(driver.status)
    status = DispatchStatus(record.status)
    if status == DispatchStatus.QUEUED and current == DriverStatus.INACTIVE:
        target = DriverStatus.WAITING
    elif status == DispatchStatus.DISPATCHED and current == DriverStatus.WAITING:
        target = DriverStatus.DISPATCHED
    elif is_terminal(status) and current != DriverStatus.INACTIVE:
        # Waiting drivers are held by active records, dispatched ones by trips
        holding = (
            ACTIVE_DISPATCH_STATUSES
            if current == DriverStatus.WAITING
            else (DispatchStatus.DISPATCHED,)
        )
        others = await DispatchRecordRepository(
            session
        ).get_for_driver_in_statuses_for_update(driver.id, holding)
        if any(r.id != record.id for r in others):
            return
        target = DriverStatus.INACTIVE
    else:
        return

    driver.status = ensure_driver_transition(current, target)
    logger.info(
        "Driver '%s' follows record %s: %s -> %s",
        driver.name,
        record.id,
        current.value,
        target.value,
    )


async def update_record_status(
    session: AsyncSession, record_id: str, status: DispatchStatus
) -> DispatchRecordModel:
    """Administrative move of a single record, validated against the table."""
    record = await DispatchRecordRepository(session).get_by_id_for_update(record_id)
    if record is None:
        raise NotFound(f"Dispatch record {record_id} not found")

    previous = DispatchStatus(record.status)
    record.status = ensure_dispatch_transition(previous, status)
    if is_terminal(status) and record.end_time is None:
        record.end_time = utcnow()
    if status == DispatchStatus.DISPATCHED:
        if record.bags_taken is None:
            record.bags_taken = 0
        if record.end_time is None:
            record.end_time = utcnow()
    if record.driver_id:
        await _follow_record(session, record)
    await flush_or_conflict(session)

    logger.info(
        "Record %s moved %s -> %s by admin", record.id, previous.value, status.value
    )
    return record


async def schedule_roster(
    session: AsyncSession, names: list[str], day: date
) -> RosterResult:
    """
    Replace the pending roster of local *day* with *names*, in order.

    Roster rows already scheduled inside the day are deleted first, so
    running the same roster twice leaves exactly one set of entries.
    Entries created by a check-in are kept, and their drivers are skipped.
    """
    unique, repeated = split_roster(names)
    if not unique:
        raise ValidationFailure("Roster contains no driver names")

    tz_name = settings.local_timezone
    window_start = local_midnight(day, tz_name)
    window_end = local_midnight(day + timedelta(days=1), tz_name)

    drivers = DriverRepository(session)
    records = DispatchRecordRepository(session)

    replaced = await records.delete_scheduled_between(window_start, window_end)
    result = RosterResult(day=day, replaced=replaced)
    result.skipped.extend(f"{name}: listed more than once" for name in repeated)

    starts = scheduled_times(day, len(unique), settings.roster_start_hour, tz_name)
    for name, start_time in zip(unique, starts):
        driver = await drivers.get_by_name(name)
        if driver is None:
            driver = await drivers.create(
                DriverModel(name=name, status=DriverStatus.INACTIVE)
            )
            logger.info("Registered new driver '%s' from roster", name)
        elif await records.get_active_for_driver(driver.id) is not None:
            result.skipped.append(f"{name}: already has an active queue entry")
            continue

        result.scheduled.append(
            DispatchRecordModel(
                driver_id=driver.id,
                driver_name=driver.name,
                start_time=start_time,
                status=DispatchStatus.PENDING,
            )
        )

    await records.add_all(result.scheduled)
    await flush_or_conflict(session)

    logger.info(
        "Roster for %s: %d scheduled, %d replaced, %d skipped",
        day.isoformat(),
        len(result.scheduled),
        replaced,
        len(result.skipped),
    )
    return result


async def records_between(
    session: AsyncSession, start: datetime, end: datetime
) -> list[DispatchRecordModel]:
    if end <= start:
        raise ValidationFailure("Report window end must be after its start")
    return await DispatchRecordRepository(session).list_between(start, end)
