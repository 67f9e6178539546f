"""Unit tests for driver rankings and local-time report windows."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz

from src.domain.enums import DispatchStatus
from src.domain.ranking import day_window, rank_drivers, week_window

TZ = "America/Santiago"


@dataclass
class _Record:
    driver_id: Optional[str]
    driver_name: str
    status: DispatchStatus


def _rec(driver_id, status=DispatchStatus.DISPATCHED):
    return _Record(driver_id, f"name-{driver_id}", status)


class TestRankDrivers:
    def test_sorted_by_count_descending(self):
        records = [_rec("a"), _rec("b"), _rec("b"), _rec("c"), _rec("b"), _rec("c")]
        ranked = rank_drivers(records)
        assert [(r.driver_id, r.trip_count) for r in ranked] == [
            ("b", 3),
            ("c", 2),
            ("a", 1),
        ]

    def test_ties_keep_discovery_order(self):
        records = [_rec("x"), _rec("y"), _rec("z"), _rec("y"), _rec("x")]
        assert [r.driver_id for r in rank_drivers(records)] == ["x", "y", "z"]

    def test_only_completed_trips_count(self):
        records = [
            _rec("a", DispatchStatus.QUEUED),
            _rec("a", DispatchStatus.CANCELLED),
            _rec("b", DispatchStatus.COMPLETED),
            _rec("c", DispatchStatus.PENDING),
        ]
        ranked = rank_drivers(records)
        assert [r.driver_id for r in ranked] == ["b"]

    def test_deleted_drivers_are_skipped(self):
        assert rank_drivers([_rec(None), _rec(None)]) == []

    def test_limit(self):
        records = [_rec(str(i)) for i in range(10)]
        assert len(rank_drivers(records, limit=3)) == 3

    def test_empty(self):
        assert rank_drivers([]) == []


class TestWindows:
    def test_day_window_is_local_midnight(self):
        # 02:00 UTC on 15 Jan is still 14 Jan 23:00 in Santiago (UTC-3, DST)
        now = datetime(2026, 1, 15, 2, 0, tzinfo=timezone.utc)
        start, end = day_window(now, TZ)
        local = pytz.timezone(TZ)
        assert start == local.localize(datetime(2026, 1, 14))
        assert end == local.localize(datetime(2026, 1, 15))
        assert start <= now < end

    def test_day_window_winter_offset(self):
        now = datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)
        start, end = day_window(now, TZ)
        assert start.utcoffset() == timedelta(hours=-4)
        assert end - start == timedelta(days=1)

    def test_week_window_starts_monday(self):
        # Thursday 15 Jan 2026, local afternoon
        now = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)
        start, end = week_window(now, TZ)
        assert start.date().isoformat() == "2026-01-12"
        assert start.weekday() == 0
        assert end - start == timedelta(days=7)
        assert start <= now < end
