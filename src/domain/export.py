"""
Dispatch history export.

CSV column order is fixed; ``csv.writer`` handles RFC 4180 quoting, so
names or destination areas containing commas, quotes or newlines survive
a round trip through any spreadsheet.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol

CSV_COLUMNS = (
    "driver_name",
    "persistent_id",
    "check_in_time",
    "check_out_time",
    "bags",
    "destination_area",
    "selfie_taken",
    "latitude",
    "longitude",
)


class _ExportableRecord(Protocol):
    id: str
    driver_id: Optional[str]
    driver_name: str
    device_id: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    bags_taken: Optional[int]
    destination_area: Optional[str]
    selfie_url: Optional[str]
    start_latitude: Optional[float]
    start_longitude: Optional[float]
    status: Any


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _blank(value: Any) -> Any:
    return "" if value is None else value


def csv_row(record: _ExportableRecord) -> list[Any]:
    return [
        record.driver_name,
        _blank(record.device_id),
        _iso(record.start_time),
        _iso(record.end_time),
        _blank(record.bags_taken),
        _blank(record.destination_area),
        "yes" if record.selfie_url else "no",
        _blank(record.start_latitude),
        _blank(record.start_longitude),
    ]


def to_csv(records: Iterable[_ExportableRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(CSV_COLUMNS)
    for record in records:
        writer.writerow(csv_row(record))
    return buffer.getvalue()


def to_json(records: Iterable[_ExportableRecord]) -> str:
    rows = [
        {
            "id": r.id,
            "driver_id": r.driver_id,
            "driver_name": r.driver_name,
            "persistent_id": r.device_id,
            "status": getattr(r.status, "value", r.status),
            "check_in_time": r.start_time.isoformat() if r.start_time else None,
            "check_out_time": r.end_time.isoformat() if r.end_time else None,
            "bags": r.bags_taken,
            "destination_area": r.destination_area,
            "selfie_taken": bool(r.selfie_url),
            "selfie_url": r.selfie_url,
            "latitude": r.start_latitude,
            "longitude": r.start_longitude,
        }
        for r in records
    ]
    return json.dumps(rows, indent=2, ensure_ascii=False)
