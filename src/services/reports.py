"""Rankings and dispatch history export over local-time windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.enums import COMPLETED_TRIP_STATUSES
from src.domain.errors import ValidationFailure
from src.domain.export import to_csv, to_json
from src.domain.ranking import DriverRanking, day_window, rank_drivers, week_window
from src.infrastructure.models import utcnow
from src.infrastructure.repositories import DispatchRecordRepository
from src.services.queue import records_between

logger = logging.getLogger(__name__)

PERIODS = ("day", "week")
EXPORT_FORMATS = ("csv", "json")


@dataclass
class RankingReport:
    start: datetime
    end: datetime
    rankings: list[DriverRanking]


def resolve_window(
    period: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """An explicit ``start``/``end`` pair wins; otherwise the named period."""
    if start is not None or end is not None:
        if start is None or end is None:
            raise ValidationFailure("Both start and end are required")
        if end <= start:
            raise ValidationFailure("Window end must be after its start")
        return start, end

    now = now or utcnow()
    period = period or "day"
    if period == "day":
        return day_window(now, settings.local_timezone)
    if period == "week":
        return week_window(now, settings.local_timezone)
    raise ValidationFailure(f"Unknown period '{period}'; use one of {', '.join(PERIODS)}")


async def rankings(
    session: AsyncSession,
    period: Optional[str] = "day",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> RankingReport:
    window_start, window_end = resolve_window(period, start, end, now)
    records = await DispatchRecordRepository(session).list_between(
        window_start, window_end, COMPLETED_TRIP_STATUSES
    )
    ranked = rank_drivers(records, limit or settings.ranking_limit)
    return RankingReport(start=window_start, end=window_end, rankings=ranked)


async def export_records(
    session: AsyncSession, fmt: str, start: datetime, end: datetime
) -> str:
    if fmt not in EXPORT_FORMATS:
        raise ValidationFailure(
            f"Unknown export format '{fmt}'; use one of {', '.join(EXPORT_FORMATS)}"
        )
    records = await records_between(session, start, end)
    logger.info(
        "Exporting %d records (%s) for %s..%s",
        len(records),
        fmt,
        start.isoformat(),
        end.isoformat(),
    )
    return to_csv(records) if fmt == "csv" else to_json(records)
