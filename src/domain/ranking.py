"""
Driver rankings and reporting windows.

Ranking rule
------------
Count qualifying records (``dispatched`` / ``completed``) per driver id,
sort descending by count.  Python's sort is stable, so ties keep the order
in which drivers were first seen while walking the records (newest first
as delivered by the repository).  Drivers without qualifying records never
appear.

Complexity: O(N + D log D) for N records and D distinct drivers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Protocol

import pytz

from .enums import COMPLETED_TRIP_STATUSES, DispatchStatus


class _RankableRecord(Protocol):
    driver_id: Optional[str]
    driver_name: str
    status: DispatchStatus


@dataclass(frozen=True)
class DriverRanking:
    driver_id: str
    name: str
    trip_count: int


def rank_drivers(
    records: Iterable[_RankableRecord], limit: Optional[int] = None
) -> list[DriverRanking]:
    counts: dict[str, list] = {}
    for record in records:
        if DispatchStatus(record.status) not in COMPLETED_TRIP_STATUSES:
            continue
        if record.driver_id is None:
            continue
        entry = counts.setdefault(record.driver_id, [record.driver_name, 0])
        entry[1] += 1

    rankings = [
        DriverRanking(driver_id=driver_id, name=name, trip_count=count)
        for driver_id, (name, count) in counts.items()
    ]
    rankings.sort(key=lambda r: r.trip_count, reverse=True)
    return rankings[:limit] if limit is not None else rankings


# ── Windows ───────────────────────────────────────────────────────────


def local_midnight(day: date, tz_name: str) -> datetime:
    """Aware datetime for 00:00 of *day* in the given zone."""
    tz = pytz.timezone(tz_name)
    return tz.localize(datetime(day.year, day.month, day.day))


def local_date(now: datetime, tz_name: str) -> date:
    return now.astimezone(pytz.timezone(tz_name)).date()


def day_window(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """[local midnight, next local midnight) containing *now*."""
    today = local_date(now, tz_name)
    return (
        local_midnight(today, tz_name),
        local_midnight(today + timedelta(days=1), tz_name),
    )


def week_window(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """[Monday 00:00, next Monday 00:00) local time, containing *now*."""
    today = local_date(now, tz_name)
    monday = today - timedelta(days=today.weekday())
    return (
        local_midnight(monday, tz_name),
        local_midnight(monday + timedelta(days=7), tz_name),
    )
