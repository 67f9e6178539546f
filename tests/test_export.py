"""Unit tests for the CSV / JSON dispatch export."""

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from src.domain.enums import DispatchStatus
from src.domain.export import CSV_COLUMNS, to_csv, to_json


@dataclass
class _Record:
    id: str = "r1"
    driver_id: Optional[str] = "d1"
    driver_name: str = "Camila Rojas"
    device_id: Optional[str] = "dev-1"
    start_time: Optional[datetime] = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
    end_time: Optional[datetime] = None
    bags_taken: Optional[int] = 3
    destination_area: Optional[str] = "Maipú"
    selfie_url: Optional[str] = "http://x/selfie.jpg"
    start_latitude: Optional[float] = -33.5643
    start_longitude: Optional[float] = -70.6803
    status: DispatchStatus = DispatchStatus.DISPATCHED


class TestCsv:
    def test_header_and_column_order(self):
        rows = list(csv.reader(io.StringIO(to_csv([_Record()]))))
        assert tuple(rows[0]) == CSV_COLUMNS
        assert rows[1] == [
            "Camila Rojas",
            "dev-1",
            "2026-03-02T12:00:00+00:00",
            "",
            "3",
            "Maipú",
            "yes",
            "-33.5643",
            "-70.6803",
        ]

    def test_quotes_and_commas_are_escaped(self):
        record = _Record(
            driver_name='Rojas, "La Flaca"', destination_area="Sector 3,\nPasaje B"
        )
        text = to_csv([record])
        assert '"Rojas, ""La Flaca"""' in text
        row = list(csv.reader(io.StringIO(text)))[1]
        assert row[0] == 'Rojas, "La Flaca"'
        assert row[5] == "Sector 3,\nPasaje B"
        assert len(row) == len(CSV_COLUMNS)

    def test_missing_values_are_blank(self):
        record = _Record(
            device_id=None,
            start_time=None,
            bags_taken=None,
            destination_area=None,
            selfie_url=None,
            start_latitude=None,
            start_longitude=None,
        )
        row = list(csv.reader(io.StringIO(to_csv([record]))))[1]
        assert row == ["Camila Rojas", "", "", "", "", "", "no", "", ""]

    def test_crlf_line_endings(self):
        assert to_csv([]).endswith("\r\n")


class TestJson:
    def test_pretty_printed(self):
        text = to_json([_Record()])
        assert text.startswith("[\n  {")
        data = json.loads(text)
        assert data[0]["status"] == "dispatched"
        assert data[0]["selfie_taken"] is True
        assert data[0]["check_out_time"] is None

    def test_keeps_non_ascii(self):
        assert "Maipú" in to_json([_Record()])
