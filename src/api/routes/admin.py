"""
Admin / observability endpoints
===============================

GET    /api/v1/admin/fraud-alerts               -- newest first
DELETE /api/v1/admin/fraud-alerts               -- clear all alerts
GET    /api/v1/admin/logs                       -- recent WARNING+ log records
DELETE /api/v1/admin/logs                       -- clear the log buffer
PATCH  /api/v1/admin/records/{record_id}/status -- validated status override
GET    /api/v1/admin/health                     -- simple health check
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_admin
from src.api.middleware import limiter
from src.api.schemas import (
    ClearedResponse,
    DispatchRecordResponse,
    FraudAlertResponse,
    HealthResponse,
    LogEntry,
    RecordStatusRequest,
)
from src.config import settings
from src.infrastructure.log_buffer import get_buffer
from src.services import alerts
from src.services.queue import update_record_status

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/fraud-alerts",
    response_model=list[FraudAlertResponse],
    summary="List fraud alerts",
    dependencies=[Depends(require_admin)],
)
@limiter.limit(settings.rate_limit)
async def list_fraud_alerts(
    request: Request,
    limit: int = Query(200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await alerts.list_alerts(db, limit)


@router.delete(
    "/fraud-alerts",
    response_model=ClearedResponse,
    summary="Clear fraud alerts",
    dependencies=[Depends(require_admin)],
)
@limiter.limit(settings.rate_limit)
async def clear_fraud_alerts(request: Request, db: AsyncSession = Depends(get_db)):
    return ClearedResponse(cleared=await alerts.clear_alerts(db))


@router.get(
    "/logs",
    response_model=list[LogEntry],
    summary="Recent warnings and errors",
    dependencies=[Depends(require_admin)],
)
async def list_logs():
    return get_buffer().entries()


@router.delete(
    "/logs",
    response_model=ClearedResponse,
    summary="Clear the log buffer",
    dependencies=[Depends(require_admin)],
)
async def clear_logs():
    buffer = get_buffer()
    count = len(buffer.entries())
    buffer.clear()
    return ClearedResponse(cleared=count)


@router.patch(
    "/records/{record_id}/status",
    response_model=DispatchRecordResponse,
    summary="Override a record's status",
    description="Only moves allowed by the dispatch lifecycle are accepted.",
    dependencies=[Depends(require_admin)],
)
@limiter.limit(settings.rate_limit)
async def set_record_status(
    request: Request,
    record_id: str,
    body: RecordStatusRequest,
    db: AsyncSession = Depends(get_db),
):
    return await update_record_status(db, record_id, body.status)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
