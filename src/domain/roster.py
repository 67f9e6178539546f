"""
Roster parsing and scheduled-queue timing.

Both admin tools accept text pasted from a spreadsheet:

* the **scheduled queue** takes one driver name per line; list order is the
  queue order;
* the **driver import** takes ``name<TAB>vehicle`` per line (two or more
  spaces also separate columns, as spreadsheets sometimes paste them).

Scheduled records all open at the same wall-clock instant, so each entry is
offset by one synthetic second to keep the list order when ``start_time``
is the only sort key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

import pytz

from .enums import VEHICLE_ALIASES, VehicleType

_COLUMN_SPLIT = re.compile(r"\t+|\s{2,}")


def clean_lines(lines: Iterable[str]) -> list[str]:
    return [line.strip() for line in lines if line and line.strip()]


def split_roster(names: Iterable[str]) -> tuple[list[str], list[str]]:
    """Return (unique names in order, names repeated later in the list)."""
    seen: set[str] = set()
    unique: list[str] = []
    repeated: list[str] = []
    for name in clean_lines(names):
        if name in seen:
            repeated.append(name)
            continue
        seen.add(name)
        unique.append(name)
    return unique, repeated


def scheduled_start(day: date, hour: int, tz_name: str) -> datetime:
    tz = pytz.timezone(tz_name)
    return tz.localize(datetime(day.year, day.month, day.day, hour))


def scheduled_times(
    day: date, count: int, hour: int, tz_name: str
) -> list[datetime]:
    """``count`` instants starting at *hour* local time, one second apart."""
    base = scheduled_start(day, hour, tz_name)
    return [base + timedelta(seconds=i) for i in range(count)]


# ── Driver import ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ImportLine:
    raw: str
    name: str
    vehicle_type: Optional[VehicleType]
    error: Optional[str] = None


def parse_vehicle_type(value: Optional[str]) -> Optional[VehicleType]:
    if value is None or not value.strip():
        return None
    try:
        return VEHICLE_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown vehicle type '{value.strip()}'") from None


def parse_driver_import(text: str) -> list[ImportLine]:
    parsed: list[ImportLine] = []
    for line in clean_lines(text.splitlines()):
        parts = [p.strip() for p in _COLUMN_SPLIT.split(line)]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            parsed.append(
                ImportLine(
                    raw=line,
                    name=parts[0] if parts else line,
                    vehicle_type=None,
                    error="Expected two columns: name and vehicle type",
                )
            )
            continue
        try:
            vehicle = parse_vehicle_type(parts[1])
        except ValueError as exc:
            parsed.append(
                ImportLine(raw=line, name=parts[0], vehicle_type=None, error=str(exc))
            )
            continue
        parsed.append(ImportLine(raw=line, name=parts[0], vehicle_type=vehicle))
    return parsed
