"""
Driver lifecycle
================

Check-in, queue start, dispatch, delivery completion, shift end and
cancellation.  Each function runs inside the caller's transaction (one per
request): rows it mutates are read ``FOR UPDATE`` and the ``drivers.version``
column turns a concurrent write into ``ConcurrentModification`` at flush, so
a multi-row transition either applies entirely or not at all.

Driver:           inactive -> waiting -> dispatched -> inactive
Dispatch record:  pending -> queued -> (in_progress) -> dispatched -> completed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.distance import distance_to
from src.domain.entities import (
    Location,
    ensure_dispatch_transition,
    ensure_driver_transition,
)
from src.domain.enums import (
    ACTIVE_DISPATCH_STATUSES,
    WAITING_ROOM_STATUSES,
    DispatchStatus,
    DriverStatus,
)
from src.domain.errors import (
    DriverNotEligible,
    DuplicateCheckIn,
    InvalidStateTransition,
    NotFound,
    OutsideGeofence,
    ShiftEndBlocked,
    ValidationFailure,
)
from src.domain.fraud import FraudAssessment, FraudFinding, evaluate_check_in
from src.domain.ranking import local_date, local_midnight
from src.infrastructure.database import flush_or_conflict
from src.infrastructure.models import (
    DispatchRecordModel,
    DriverModel,
    FraudAlertModel,
    utcnow,
)
from src.infrastructure.repositories import (
    DispatchRecordRepository,
    DriverRepository,
    FraudAlertRepository,
)
from src.services.bags import add_bags

logger = logging.getLogger(__name__)


@dataclass
class GeofenceVerdict:
    distance_m: float
    radius_m: float
    inside: bool


@dataclass
class CheckInResult:
    driver: DriverModel
    record: DispatchRecordModel
    alerts: list[FraudAlertModel] = field(default_factory=list)


@dataclass
class DriverStatusView:
    driver: DriverModel
    active_record: Optional[DispatchRecordModel]


@dataclass
class BulkResult:
    records: int
    drivers: int


# ── Geofence ──────────────────────────────────────────────────────────


def site_location() -> Location:
    return Location(settings.site_latitude, settings.site_longitude)


def geofence_verdict(location: Location) -> GeofenceVerdict:
    distance = distance_to(location, site_location())
    return GeofenceVerdict(
        distance_m=distance,
        radius_m=settings.geofence_radius_m,
        inside=distance <= settings.geofence_radius_m,
    )


def check_geofence(location: Optional[Location]) -> None:
    if not settings.geofence_enabled:
        return
    if location is None:
        raise ValidationFailure("Location is required to check in")
    verdict = geofence_verdict(location)
    if not verdict.inside:
        logger.warning(
            "Check-in rejected %.0f m from the store (radius %.0f m)",
            verdict.distance_m,
            verdict.radius_m,
        )
        raise OutsideGeofence(
            f"You are {verdict.distance_m:.0f} m from the store; check-in is "
            f"only allowed within {verdict.radius_m:.0f} m"
        )


# ── Check-in ──────────────────────────────────────────────────────────


async def _record_findings(
    session: AsyncSession, assessment: FraudAssessment
) -> dict[FraudFinding, FraudAlertModel]:
    repo = FraudAlertRepository(session)
    stored: dict[FraudFinding, FraudAlertModel] = {}
    for finding in assessment.findings:
        logger.warning(
            "Fraud alert %s for '%s' on device %s: %s",
            finding.kind.value,
            finding.driver_name,
            finding.device_id,
            finding.message,
        )
        stored[finding] = await repo.add(
            FraudAlertModel(
                kind=finding.kind,
                message=finding.message,
                driver_name=finding.driver_name,
                device_id=finding.device_id,
            )
        )
    return stored


async def check_in(
    session: AsyncSession,
    *,
    name: str,
    device_id: str,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    selfie_url: Optional[str] = None,
) -> CheckInResult:
    """
    Admit a driver to the pending queue.

    Raises ``DuplicateCheckIn`` when the device already holds an active
    entry; the alerts for that attempt are flushed first so the caller can
    still commit them.
    """
    name = (name or "").strip()
    device_id = (device_id or "").strip()
    if not name:
        raise ValidationFailure("Driver name is required")
    if not device_id:
        raise ValidationFailure("Device id is required")

    location = Location.from_optional(latitude, longitude)
    check_geofence(location)

    drivers = DriverRepository(session)
    records = DispatchRecordRepository(session)

    driver = await drivers.get_by_name_for_update(name)
    bound = await drivers.get_by_device(device_id)
    assessment = evaluate_check_in(
        name,
        device_id,
        driver_by_name=driver,
        driver_by_device=bound,
        device_has_active_entry=await records.device_has_active_entry(device_id),
    )
    alerts = await _record_findings(session, assessment)

    if assessment.rejected:
        surfaced = assessment.surfaced
        raise DuplicateCheckIn(surfaced.message, alert=alerts[surfaced])

    if driver is None:
        driver = await drivers.create(
            DriverModel(name=name, status=DriverStatus.INACTIVE)
        )
        logger.info("Registered new driver '%s' (%s) at check-in", name, driver.id)

    if DriverStatus(driver.status) != DriverStatus.INACTIVE:
        raise DriverNotEligible(
            f"Driver '{name}' is {DriverStatus(driver.status).value}; "
            "only inactive drivers can check in"
        )
    if await records.get_active_for_driver(driver.id) is not None:
        raise DriverNotEligible(f"Driver '{name}' already has an active queue entry")

    driver.status = ensure_driver_transition(driver.status, DriverStatus.WAITING)
    # A device is bound to one driver at a time
    for previous in await drivers.list_by_device_for_update(device_id):
        if previous.id != driver.id:
            previous.device_id = None
            logger.warning(
                "Device %s moved from '%s' to '%s'", device_id, previous.name, name
            )
    driver.device_id = device_id
    record = await records.create(
        DispatchRecordModel(
            driver_id=driver.id,
            driver_name=driver.name,
            start_time=utcnow(),
            start_latitude=location.latitude if location else None,
            start_longitude=location.longitude if location else None,
            selfie_url=selfie_url,
            device_id=device_id,
            status=DispatchStatus.PENDING,
        )
    )
    await flush_or_conflict(session)

    logger.info("Driver '%s' checked in (record %s)", name, record.id)
    return CheckInResult(driver=driver, record=record, alerts=list(alerts.values()))


async def driver_status(session: AsyncSession, name: str) -> DriverStatusView:
    driver = await DriverRepository(session).get_by_name((name or "").strip())
    if driver is None:
        raise NotFound(f"Driver '{name}' not found")
    active = await DispatchRecordRepository(session).get_active_for_driver(driver.id)
    return DriverStatusView(driver=driver, active_record=active)


async def selectable_drivers(
    session: AsyncSession, device_id: Optional[str] = None
) -> list[DriverModel]:
    """Names a device may check in as: its own driver, else unbound drivers."""
    drivers = DriverRepository(session)
    if device_id:
        bound = await drivers.get_by_device(device_id)
        if bound is not None:
            return [bound]
    return await drivers.list_unbound()


# ── Coordinator actions ───────────────────────────────────────────────


async def bulk_start_queue(
    session: AsyncSession, now: Optional[datetime] = None
) -> BulkResult:
    """
    Move every pending record due today (local time) to ``queued`` and put
    its driver in ``waiting`` if they were still inactive.  Records a
    roster scheduled for a later day stay pending.
    """
    now = now or utcnow()
    today = local_date(now, settings.local_timezone)
    cutoff = local_midnight(today + timedelta(days=1), settings.local_timezone)

    records = DispatchRecordRepository(session)
    pending = await records.list_in_statuses_for_update(
        [DispatchStatus.PENDING], before=cutoff
    )
    driver_ids = {r.driver_id for r in pending if r.driver_id}
    idle = (
        await DriverRepository(session).list_by_status_for_update(
            DriverStatus.INACTIVE, ids=driver_ids
        )
        if driver_ids
        else []
    )

    for record in pending:
        record.status = ensure_dispatch_transition(record.status, DispatchStatus.QUEUED)
    for driver in idle:
        driver.status = ensure_driver_transition(driver.status, DriverStatus.WAITING)
    await flush_or_conflict(session)

    logger.info(
        "Queue started: %d records queued, %d drivers waiting",
        len(pending),
        len(idle),
    )
    return BulkResult(records=len(pending), drivers=len(idle))


async def dispatch(
    session: AsyncSession,
    driver_id: str,
    bags_taken: int,
    destination_area: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> DispatchRecordModel:
    if bags_taken is None or bags_taken < 0:
        raise ValidationFailure("Bags taken must be zero or more")
    location = Location.from_optional(latitude, longitude)

    driver = await DriverRepository(session).get_by_id_for_update(driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")
    waiting = await DispatchRecordRepository(
        session
    ).get_for_driver_in_statuses_for_update(driver.id, WAITING_ROOM_STATUSES)
    if not waiting:
        raise InvalidStateTransition(
            f"Driver '{driver.name}' has no queued record to dispatch"
        )
    record = waiting[0]

    driver.status = ensure_driver_transition(driver.status, DriverStatus.DISPATCHED)
    record.status = ensure_dispatch_transition(record.status, DispatchStatus.DISPATCHED)
    record.bags_taken = bags_taken
    record.end_time = utcnow()
    record.destination_area = (destination_area or "").strip() or None
    if location is not None:
        record.end_latitude = location.latitude
        record.end_longitude = location.longitude
    await flush_or_conflict(session)

    if bags_taken:
        await add_bags(session, driver.id, bags_taken, dispatch_record_id=record.id)

    logger.info(
        "Dispatched '%s' with %d bags to %s",
        record.driver_name,
        bags_taken,
        record.destination_area or "unspecified area",
    )
    return record


async def complete_delivery(
    session: AsyncSession,
    record_id: str,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> DispatchRecordModel:
    location = Location.from_optional(latitude, longitude)
    records = DispatchRecordRepository(session)
    record = await records.get_by_id_for_update(record_id)
    if record is None:
        raise NotFound(f"Dispatch record {record_id} not found")

    record.status = ensure_dispatch_transition(record.status, DispatchStatus.COMPLETED)
    if record.end_time is None:
        record.end_time = utcnow()
    if location is not None:
        record.end_latitude = location.latitude
        record.end_longitude = location.longitude

    if record.driver_id:
        driver = await DriverRepository(session).get_by_id_for_update(record.driver_id)
        still_out = await records.get_for_driver_in_statuses_for_update(
            record.driver_id, [DispatchStatus.DISPATCHED]
        )
        still_out = [r for r in still_out if r.id != record.id]
        if (
            driver is not None
            and DriverStatus(driver.status) == DriverStatus.DISPATCHED
            and not still_out
        ):
            driver.status = ensure_driver_transition(
                driver.status, DriverStatus.INACTIVE
            )
    await flush_or_conflict(session)

    logger.info("Delivery completed for '%s' (record %s)", record.driver_name, record.id)
    return record


async def end_shift(session: AsyncSession) -> int:
    """
    Return every dispatched driver to ``inactive``.  Refused before any
    write while drivers are still waiting in the queue.
    """
    blocking = await DispatchRecordRepository(session).list_in_statuses_for_update(
        WAITING_ROOM_STATUSES
    )
    if blocking:
        logger.warning("Shift end refused: %d records still queued", len(blocking))
        raise ShiftEndBlocked(
            f"{len(blocking)} driver(s) are still waiting in the queue; "
            "dispatch or cancel them before ending the shift"
        )

    dispatched = await DriverRepository(session).list_by_status_for_update(
        DriverStatus.DISPATCHED
    )
    for driver in dispatched:
        driver.status = ensure_driver_transition(driver.status, DriverStatus.INACTIVE)
    await flush_or_conflict(session)

    logger.info("Shift ended: %d drivers set inactive", len(dispatched))
    return len(dispatched)


async def _cancel_records(
    session: AsyncSession, active: list[DispatchRecordModel]
) -> int:
    driver_ids = {r.driver_id for r in active if r.driver_id}
    waiting = (
        await DriverRepository(session).list_by_status_for_update(
            DriverStatus.WAITING, ids=driver_ids
        )
        if driver_ids
        else []
    )
    now = utcnow()
    for record in active:
        record.status = ensure_dispatch_transition(record.status, DispatchStatus.CANCELLED)
        record.end_time = now
    for driver in waiting:
        driver.status = ensure_driver_transition(driver.status, DriverStatus.INACTIVE)
    await flush_or_conflict(session)
    return len(waiting)


async def cancel(session: AsyncSession, driver_id: str) -> BulkResult:
    driver = await DriverRepository(session).get_by_id_for_update(driver_id)
    if driver is None:
        raise NotFound(f"Driver {driver_id} not found")
    active = await DispatchRecordRepository(
        session
    ).get_for_driver_in_statuses_for_update(driver.id, ACTIVE_DISPATCH_STATUSES)
    if not active:
        raise InvalidStateTransition(
            f"Driver '{driver.name}' has no active queue entry to cancel"
        )

    released = await _cancel_records(session, active)
    logger.info("Cancelled %d records for '%s'", len(active), driver.name)
    return BulkResult(records=len(active), drivers=released)


async def cancel_all_pending(session: AsyncSession) -> BulkResult:
    active = await DispatchRecordRepository(session).list_in_statuses_for_update(
        ACTIVE_DISPATCH_STATUSES
    )
    released = await _cancel_records(session, active)
    logger.info(
        "Cancelled all: %d records, %d drivers released", len(active), released
    )
    return BulkResult(records=len(active), drivers=released)
