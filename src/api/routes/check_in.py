"""
Driver check-in endpoints
=========================

GET  /api/v1/check-in/drivers   -- names this device may check in as
GET  /api/v1/check-in/geofence  -- preview the distance check
POST /api/v1/check-in/selfies   -- upload a selfie, returns its public URL
POST /api/v1/check-in           -- join the pending queue
GET  /api/v1/check-in/status    -- a driver's status and active record

Drivers do not log in; the device id they send is a self-reported token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_event_bus, get_storage
from src.api.middleware import limiter
from src.api.schemas import (
    CheckInRequest,
    CheckInResponse,
    DriverStatusResponse,
    ErrorResponse,
    FraudAlertResponse,
    GeofenceResponse,
    SelectableDriver,
    SelfieResponse,
)
from src.config import settings
from src.domain.entities import Location
from src.domain.errors import DuplicateCheckIn
from src.infrastructure.events import EventBus
from src.infrastructure.storage import SelfieStorage
from src.services import lifecycle

router = APIRouter(prefix="/check-in", tags=["check-in"])


@router.get(
    "/drivers",
    response_model=list[SelectableDriver],
    summary="Drivers selectable from this device",
)
@limiter.limit(settings.rate_limit)
async def selectable_drivers(
    request: Request,
    device_id: Optional[str] = Query(None, max_length=128),
    db: AsyncSession = Depends(get_db),
):
    return await lifecycle.selectable_drivers(db, device_id)


@router.get("/geofence", response_model=GeofenceResponse, summary="Geofence preview")
async def geofence(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
):
    verdict = lifecycle.geofence_verdict(Location(latitude, longitude))
    return GeofenceResponse(
        enabled=settings.geofence_enabled,
        distance_m=round(verdict.distance_m, 1),
        radius_m=verdict.radius_m,
        inside=verdict.inside or not settings.geofence_enabled,
    )


@router.post(
    "/selfies",
    status_code=201,
    response_model=SelfieResponse,
    summary="Upload a check-in selfie",
)
@limiter.limit(settings.rate_limit)
async def upload_selfie(
    request: Request,
    file: UploadFile = File(...),
    device_id: Optional[str] = Form(None),
    storage: SelfieStorage = Depends(get_storage),
):
    content = await file.read()
    url = await storage.save(device_id, content, file.content_type)
    return SelfieResponse(url=url)


@router.post(
    "",
    status_code=201,
    response_model=CheckInResponse,
    summary="Check in and join the pending queue",
    responses={
        409: {"model": ErrorResponse, "description": "Duplicate or ineligible check-in."},
        422: {"model": ErrorResponse, "description": "Outside the geofence."},
    },
)
@limiter.limit(settings.rate_limit)
async def check_in(
    request: Request,
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        result = await lifecycle.check_in(
            db,
            name=body.name,
            device_id=body.device_id,
            latitude=body.latitude,
            longitude=body.longitude,
            selfie_url=body.selfie_url,
        )
    except DuplicateCheckIn as exc:
        # Returned rather than raised so the alert rows still commit
        alert = (
            FraudAlertResponse.model_validate(exc.alert) if exc.alert is not None else None
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder({"detail": exc.detail, "alert": alert}),
        )

    await db.commit()
    await events.publish(
        "checked_in", driver_id=result.driver.id, record_id=result.record.id
    )
    return CheckInResponse.model_validate(result, from_attributes=True)


@router.get(
    "/status",
    response_model=DriverStatusResponse,
    summary="Current status of a driver",
)
@limiter.limit(settings.rate_limit)
async def driver_status(
    request: Request,
    name: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    view = await lifecycle.driver_status(db, name)
    return DriverStatusResponse.model_validate(view, from_attributes=True)
