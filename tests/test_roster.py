"""Roster parsing, scheduled-queue timing and the scheduling service."""

from datetime import date, datetime, timedelta

import pytest
import pytz
from sqlalchemy import select

from src.config import settings
from src.domain.enums import DispatchStatus, DriverStatus, VehicleType
from src.domain.errors import ValidationFailure
from src.domain.roster import (
    parse_driver_import,
    parse_vehicle_type,
    scheduled_times,
    split_roster,
)
from src.domain.ranking import local_date
from src.infrastructure.models import DispatchRecordModel, DriverModel, utcnow
from src.services import lifecycle
from src.services.queue import schedule_roster

TZ = "America/Santiago"
DAY = date(2026, 3, 2)


class TestSplitRoster:
    def test_blank_lines_dropped_and_order_kept(self):
        unique, repeated = split_roster(["  Ana ", "", "Bea", "   ", "Ana", "Caro"])
        assert unique == ["Ana", "Bea", "Caro"]
        assert repeated == ["Ana"]


class TestScheduledTimes:
    def test_one_second_apart_from_start_hour(self):
        times = scheduled_times(DAY, 3, 8, TZ)
        assert times[0] == pytz.timezone(TZ).localize(datetime(2026, 3, 2, 8))
        assert [t - times[0] for t in times] == [
            timedelta(0),
            timedelta(seconds=1),
            timedelta(seconds=2),
        ]


class TestDriverImport:
    def test_aliases(self):
        assert parse_vehicle_type("Auto") == VehicleType.CAR
        assert parse_vehicle_type("moto") == VehicleType.MOTORCYCLE
        assert parse_vehicle_type("motorcycle") == VehicleType.MOTORCYCLE
        assert parse_vehicle_type("") is None

    def test_unknown_vehicle(self):
        with pytest.raises(ValueError, match="Unknown vehicle type 'bus'"):
            parse_vehicle_type("bus")

    def test_tab_and_double_space_separators(self):
        lines = parse_driver_import("Ana Díaz\tauto\n\nBea Soto    moto\n")
        assert [(line.name, line.vehicle_type) for line in lines] == [
            ("Ana Díaz", VehicleType.CAR),
            ("Bea Soto", VehicleType.MOTORCYCLE),
        ]
        assert all(line.error is None for line in lines)

    def test_unknown_vehicle_is_reported_per_line(self):
        (line,) = parse_driver_import("Ana Díaz\tbus")
        assert line.name == "Ana Díaz"
        assert line.error == "Unknown vehicle type 'bus'"

    def test_single_column_is_an_error(self):
        (line,) = parse_driver_import("Just A Name")
        assert line.error == "Expected two columns: name and vehicle type"


class TestScheduleRoster:
    @pytest.mark.asyncio
    async def test_creates_drivers_and_pending_records(self, db_session):
        result = await schedule_roster(db_session, ["Ana", "Bea"], DAY)
        assert [r.driver_name for r in result.scheduled] == ["Ana", "Bea"]
        assert all(r.status == DispatchStatus.PENDING for r in result.scheduled)
        assert result.scheduled[1].start_time - result.scheduled[0].start_time == (
            timedelta(seconds=1)
        )

        drivers = (await db_session.execute(select(DriverModel))).scalars().all()
        assert {d.name for d in drivers} == {"Ana", "Bea"}

    @pytest.mark.asyncio
    async def test_rerun_replaces_instead_of_duplicating(self, db_session):
        await schedule_roster(db_session, ["Ana", "Bea", "Caro"], DAY)
        second = await schedule_roster(db_session, ["Bea", "Ana"], DAY)
        assert second.replaced == 3

        rows = (
            await db_session.execute(
                select(DispatchRecordModel).order_by(DispatchRecordModel.start_time)
            )
        ).scalars().all()
        assert [r.driver_name for r in rows] == ["Bea", "Ana"]

    @pytest.mark.asyncio
    async def test_other_days_are_untouched(self, db_session):
        await schedule_roster(db_session, ["Ana"], DAY)
        result = await schedule_roster(db_session, ["Bea", "Ana"], DAY + timedelta(days=1))
        assert result.replaced == 0
        assert [r.driver_name for r in result.scheduled] == ["Bea"]
        assert result.skipped == ["Ana: already has an active queue entry"]

    @pytest.mark.asyncio
    async def test_existing_driver_is_reused(self, db_session):
        db_session.add(DriverModel(name="Ana", vehicle_type=VehicleType.CAR))
        await db_session.flush()

        await schedule_roster(db_session, ["Ana"], DAY)
        drivers = (await db_session.execute(select(DriverModel))).scalars().all()
        assert len(drivers) == 1

    @pytest.mark.asyncio
    async def test_empty_roster_rejected(self, db_session):
        with pytest.raises(ValidationFailure):
            await schedule_roster(db_session, ["", "   "], DAY)

    @pytest.mark.asyncio
    async def test_check_in_entries_survive_a_same_day_roster(self, db_session):
        checked = await lifecycle.check_in(
            db_session,
            name="Camila",
            device_id="dev-1",
            latitude=settings.site_latitude,
            longitude=settings.site_longitude,
        )
        today = local_date(utcnow(), settings.local_timezone)

        result = await schedule_roster(db_session, ["Ana", "Camila"], today)
        assert result.replaced == 0
        assert [r.driver_name for r in result.scheduled] == ["Ana"]
        assert result.skipped == ["Camila: already has an active queue entry"]

        view = await lifecycle.driver_status(db_session, "Camila")
        assert view.driver.status == DriverStatus.WAITING
        assert view.active_record.id == checked.record.id

        # The driver can still leave the queue through the normal path
        cancelled = await lifecycle.cancel(db_session, checked.driver.id)
        assert cancelled.records == 1
        assert checked.driver.status == DriverStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_rerun_only_replaces_roster_rows(self, db_session):
        today = local_date(utcnow(), settings.local_timezone)
        await schedule_roster(db_session, ["Ana", "Bea"], today)
        await lifecycle.check_in(
            db_session,
            name="Camila",
            device_id="dev-1",
            latitude=settings.site_latitude,
            longitude=settings.site_longitude,
        )

        second = await schedule_roster(db_session, ["Bea"], today)
        assert second.replaced == 2

        rows = (await db_session.execute(select(DispatchRecordModel))).scalars().all()
        assert sorted(r.driver_name for r in rows) == ["Bea", "Camila"]
