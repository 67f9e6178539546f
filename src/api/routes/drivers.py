"""
Driver administration endpoints (admin only)
============================================

GET    /api/v1/drivers              -- full registry
POST   /api/v1/drivers              -- create a driver
GET    /api/v1/drivers/{driver_id}  -- one driver
PATCH  /api/v1/drivers/{driver_id}  -- edit name, vehicle, status
DELETE /api/v1/drivers/{driver_id}  -- delete; records keep the name
POST   /api/v1/drivers/import       -- paste 'name<TAB>vehicle' lines
POST   /api/v1/drivers/roster       -- schedule a day's queue
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_event_bus, require_admin
from src.api.middleware import limiter
from src.api.schemas import (
    DriverCreateRequest,
    DriverImportRequest,
    DriverResponse,
    DriverUpdateRequest,
    ImportLineResponse,
    RosterRequest,
    RosterResponse,
)
from src.config import settings
from src.infrastructure.events import EventBus
from src.infrastructure.locks import queue_lock
from src.infrastructure.redis_client import get_redis
from src.services import drivers
from src.services.queue import schedule_roster

router = APIRouter(
    prefix="/drivers", tags=["drivers"], dependencies=[Depends(require_admin)]
)


@router.get("", response_model=list[DriverResponse], summary="List drivers")
@limiter.limit(settings.rate_limit)
async def list_drivers(request: Request, db: AsyncSession = Depends(get_db)):
    return await drivers.list_drivers(db)


@router.post(
    "", status_code=201, response_model=DriverResponse, summary="Create a driver"
)
@limiter.limit(settings.rate_limit)
async def create_driver(
    request: Request,
    body: DriverCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await drivers.create_driver(db, body.name, body.vehicle_type)


@router.get("/{driver_id}", response_model=DriverResponse, summary="Get a driver")
@limiter.limit(settings.rate_limit)
async def get_driver(
    request: Request, driver_id: str, db: AsyncSession = Depends(get_db)
):
    return await drivers.get_driver(db, driver_id)


@router.post(
    "/import",
    response_model=list[ImportLineResponse],
    summary="Import drivers from pasted text",
)
@limiter.limit(settings.rate_limit)
async def import_drivers(
    request: Request,
    body: DriverImportRequest,
    db: AsyncSession = Depends(get_db),
):
    return await drivers.import_drivers(db, body.text)


@router.post(
    "/roster",
    response_model=RosterResponse,
    summary="Schedule a day's queue",
    description=(
        "Replaces the roster entries of the given local day with one entry "
        "per name, opening at the configured start hour, one second apart. "
        "Check-in entries are kept and their drivers skipped."
    ),
)
@limiter.limit(settings.rate_limit)
async def schedule(
    request: Request,
    body: RosterRequest,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    events: EventBus = Depends(get_event_bus),
):
    async with queue_lock(redis):
        result = await schedule_roster(db, body.names, body.day)
        await db.commit()
    await events.publish(
        "roster_scheduled", day=body.day.isoformat(), scheduled=len(result.scheduled)
    )
    return RosterResponse.model_validate(result, from_attributes=True)


@router.patch("/{driver_id}", response_model=DriverResponse, summary="Edit a driver")
@limiter.limit(settings.rate_limit)
async def update_driver(
    request: Request,
    driver_id: str,
    body: DriverUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await drivers.update_driver(
        db,
        driver_id,
        name=body.name,
        vehicle_type=body.vehicle_type,
        status=body.status,
        clear_device=body.clear_device,
        clear_vehicle_type=body.clear_vehicle_type,
    )


@router.delete("/{driver_id}", status_code=204, summary="Delete a driver")
@limiter.limit(settings.rate_limit)
async def delete_driver(
    request: Request, driver_id: str, db: AsyncSession = Depends(get_db)
):
    await drivers.delete_driver(db, driver_id)
