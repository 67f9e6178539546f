"""
Report endpoints (admin only)
=============================

GET /api/v1/reports/records   -- dispatch records in a window, newest first
GET /api/v1/reports/export    -- the same window as CSV or JSON download
GET /api/v1/reports/rankings  -- drivers ranked by completed trips

Windows default to the current local day; ``period=week`` selects Monday to
Monday, and explicit ``start``/``end`` override both.  Naive timestamps are
read as local time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

import pytz
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_admin
from src.api.middleware import limiter
from src.api.schemas import DispatchRecordResponse, RankingEntry, RankingResponse
from src.config import settings
from src.services import reports
from src.services.queue import records_between

router = APIRouter(
    prefix="/reports", tags=["reports"], dependencies=[Depends(require_admin)]
)

_MEDIA_TYPES = {"csv": "text/csv; charset=utf-8", "json": "application/json"}


def _localize(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return pytz.timezone(settings.local_timezone).localize(value)


def _window(
    period: Optional[str], start: Optional[datetime], end: Optional[datetime]
) -> tuple[datetime, datetime]:
    return reports.resolve_window(period, _localize(start), _localize(end))


@router.get(
    "/records", response_model=list[DispatchRecordResponse], summary="Records in window"
)
@limiter.limit(settings.rate_limit)
async def list_records(
    request: Request,
    period: Literal["day", "week"] = "day",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
):
    window_start, window_end = _window(period, start, end)
    return await records_between(db, window_start, window_end)


@router.get("/export", summary="Download records as CSV or JSON")
@limiter.limit(settings.rate_limit)
async def export(
    request: Request,
    fmt: Literal["csv", "json"] = Query("csv", alias="format"),
    period: Literal["day", "week"] = "day",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
):
    window_start, window_end = _window(period, start, end)
    body = await reports.export_records(db, fmt, window_start, window_end)
    filename = f"dispatch_{window_start.date().isoformat()}.{fmt}"
    return Response(
        content=body,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/rankings", response_model=RankingResponse, summary="Driver rankings")
@limiter.limit(settings.rate_limit)
async def rankings(
    request: Request,
    period: Literal["day", "week"] = "day",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    window_start, window_end = _window(period, start, end)
    report = await reports.rankings(
        db, start=window_start, end=window_end, limit=limit
    )
    return RankingResponse(
        start=report.start,
        end=report.end,
        rankings=[
            RankingEntry(
                position=position,
                driver_id=r.driver_id,
                name=r.name,
                trip_count=r.trip_count,
            )
            for position, r in enumerate(report.rankings, start=1)
        ],
    )
