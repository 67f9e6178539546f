"""Fraud alert review for administrators."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.models import FraudAlertModel
from src.infrastructure.repositories import FraudAlertRepository

logger = logging.getLogger(__name__)


async def list_alerts(session: AsyncSession, limit: int = 200) -> list[FraudAlertModel]:
    return await FraudAlertRepository(session).list_recent(limit)


async def clear_alerts(session: AsyncSession) -> int:
    removed = await FraudAlertRepository(session).clear()
    logger.info("Cleared %d fraud alerts", removed)
    return removed
