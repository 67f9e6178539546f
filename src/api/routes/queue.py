"""
Coordinator queue endpoints
===========================

GET  /api/v1/queue                      -- active records, oldest first
POST /api/v1/queue/start-all            -- pending -> queued, drivers -> waiting
POST /api/v1/queue/dispatch             -- mark a queued driver out with bags
POST /api/v1/queue/{record_id}/complete -- close a dispatched record
POST /api/v1/queue/drivers/{driver_id}/cancel -- drop a driver from the queue
POST /api/v1/queue/cancel-all           -- cancel every active record
POST /api/v1/queue/end-shift            -- dispatched drivers -> inactive
GET  /api/v1/queue/events               -- server-sent event stream

Queue-wide actions hold the Redis queue lock until their transaction has
committed, so two coordinator sessions cannot interleave them.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_event_bus, require_coordinator
from src.api.middleware import limiter
from src.api.schemas import (
    BulkResponse,
    CompleteRequest,
    DispatchRecordResponse,
    DispatchRequest,
    EndShiftResponse,
    QueueEntryResponse,
)
from src.config import settings
from src.domain.enums import DispatchStatus, VehicleType
from src.infrastructure.events import EventBus
from src.infrastructure.locks import queue_lock
from src.infrastructure.redis_client import get_redis
from src.services import lifecycle
from src.services.queue import active_queue

router = APIRouter(
    prefix="/queue", tags=["queue"], dependencies=[Depends(require_coordinator)]
)


@router.get("", response_model=list[QueueEntryResponse], summary="Active queue")
@limiter.limit(settings.rate_limit)
async def list_queue(
    request: Request,
    status: Optional[DispatchStatus] = None,
    vehicle_type: Optional[VehicleType] = None,
    db: AsyncSession = Depends(get_db),
):
    entries = await active_queue(db, status, vehicle_type)
    return [
        QueueEntryResponse(
            **DispatchRecordResponse.model_validate(e.record).model_dump(),
            vehicle_type=e.vehicle_type,
        )
        for e in entries
    ]


@router.post("/start-all", response_model=BulkResponse, summary="Start the queue")
@limiter.limit(settings.rate_limit)
async def start_all(
    request: Request,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    events: EventBus = Depends(get_event_bus),
):
    async with queue_lock(redis):
        result = await lifecycle.bulk_start_queue(db)
        await db.commit()
    await events.publish("queue_started", records=result.records, drivers=result.drivers)
    return BulkResponse(records=result.records, drivers=result.drivers)


@router.post(
    "/dispatch", response_model=DispatchRecordResponse, summary="Dispatch a driver"
)
@limiter.limit(settings.rate_limit)
async def dispatch_driver(
    request: Request,
    body: DispatchRequest,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    record = await lifecycle.dispatch(
        db,
        body.driver_id,
        body.bags_taken,
        destination_area=body.destination_area,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    await db.commit()
    await events.publish(
        "dispatched",
        driver_id=record.driver_id,
        record_id=record.id,
        bags_taken=record.bags_taken,
    )
    return record


@router.post(
    "/{record_id}/complete",
    response_model=DispatchRecordResponse,
    summary="Complete a delivery",
)
@limiter.limit(settings.rate_limit)
async def complete_delivery(
    request: Request,
    record_id: str,
    body: Optional[CompleteRequest] = None,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    body = body or CompleteRequest()
    record = await lifecycle.complete_delivery(
        db, record_id, latitude=body.latitude, longitude=body.longitude
    )
    await db.commit()
    await events.publish(
        "delivery_completed", driver_id=record.driver_id, record_id=record.id
    )
    return record


@router.post(
    "/drivers/{driver_id}/cancel",
    response_model=BulkResponse,
    summary="Cancel a driver's queue entry",
)
@limiter.limit(settings.rate_limit)
async def cancel_driver(
    request: Request,
    driver_id: str,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    result = await lifecycle.cancel(db, driver_id)
    await db.commit()
    await events.publish("cancelled", driver_id=driver_id, records=result.records)
    return BulkResponse(records=result.records, drivers=result.drivers)


@router.post(
    "/cancel-all", response_model=BulkResponse, summary="Cancel all active entries"
)
@limiter.limit(settings.rate_limit)
async def cancel_all(
    request: Request,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    events: EventBus = Depends(get_event_bus),
):
    async with queue_lock(redis):
        result = await lifecycle.cancel_all_pending(db)
        await db.commit()
    await events.publish("cancelled", records=result.records, drivers=result.drivers)
    return BulkResponse(records=result.records, drivers=result.drivers)


@router.post(
    "/end-shift",
    response_model=EndShiftResponse,
    summary="End the shift",
    description="Refused with 409 while any driver is still queued.",
)
@limiter.limit(settings.rate_limit)
async def end_shift(
    request: Request,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    events: EventBus = Depends(get_event_bus),
):
    async with queue_lock(redis):
        released = await lifecycle.end_shift(db)
        await db.commit()
    await events.publish("shift_ended", drivers=released)
    return EndShiftResponse(drivers_released=released)


@router.get("/events", summary="Queue change stream (server-sent events)")
async def stream_events(events: EventBus = Depends(get_event_bus)):
    async def _sse():
        async for message in events.listen():
            yield f"data: {message}\n\n"

    return StreamingResponse(
        _sse(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
