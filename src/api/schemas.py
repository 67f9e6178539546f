"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.enums import (
    BagMovementReason,
    DispatchStatus,
    DriverStatus,
    FraudAlertKind,
    UserRole,
    VehicleType,
)


# ── Requests ──────────────────────────────────────────────────────────


class LoginRequest(BaseModel):
    role: UserRole
    password: str = Field(..., min_length=1)


class CheckInRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    device_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Client-generated persistent id kept in browser storage.",
    )
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    selfie_url: Optional[str] = None


class DispatchRequest(BaseModel):
    driver_id: str
    bags_taken: int = Field(0, ge=0, le=500)
    destination_area: Optional[str] = Field(None, max_length=120)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class CompleteRequest(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class BagReturnRequest(BaseModel):
    driver_id: str
    count: int = Field(..., gt=0, le=500)


class DriverCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    vehicle_type: Optional[VehicleType] = None


class DriverUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    vehicle_type: Optional[VehicleType] = None
    status: Optional[DriverStatus] = None
    clear_device: bool = False
    clear_vehicle_type: bool = False


class DriverImportRequest(BaseModel):
    text: str = Field(..., description="One 'name<TAB>vehicle' pair per line.")


class RosterRequest(BaseModel):
    day: date
    names: list[str]


class RecordStatusRequest(BaseModel):
    status: DispatchStatus


# ── Responses ─────────────────────────────────────────────────────────


class SessionResponse(BaseModel):
    authenticated: bool
    role: Optional[UserRole] = None


class LoginResponse(BaseModel):
    token: str
    role: UserRole
    expires_in: int


class ExtendResponse(BaseModel):
    extended: bool


class DriverResponse(BaseModel):
    id: str
    name: str
    vehicle_type: Optional[VehicleType] = None
    status: DriverStatus
    device_id: Optional[str] = None
    bags_balance: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SelectableDriver(BaseModel):
    id: str
    name: str
    vehicle_type: Optional[VehicleType] = None

    model_config = {"from_attributes": True}


class DispatchRecordResponse(BaseModel):
    id: str
    driver_id: Optional[str] = None
    driver_name: str
    status: DispatchStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    end_latitude: Optional[float] = None
    end_longitude: Optional[float] = None
    selfie_url: Optional[str] = None
    device_id: Optional[str] = None
    bags_taken: Optional[int] = None
    destination_area: Optional[str] = None

    model_config = {"from_attributes": True}


class QueueEntryResponse(DispatchRecordResponse):
    vehicle_type: Optional[VehicleType] = None


class FraudAlertResponse(BaseModel):
    id: str
    kind: FraudAlertKind
    message: str
    driver_name: str
    device_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CheckInResponse(BaseModel):
    driver: DriverResponse
    record: DispatchRecordResponse
    alerts: list[FraudAlertResponse] = []


class DriverStatusResponse(BaseModel):
    driver: DriverResponse
    active_record: Optional[DispatchRecordResponse] = None


class GeofenceResponse(BaseModel):
    enabled: bool
    distance_m: float
    radius_m: float
    inside: bool


class SelfieResponse(BaseModel):
    url: str


class BulkResponse(BaseModel):
    records: int
    drivers: int


class EndShiftResponse(BaseModel):
    drivers_released: int


class BagMovementResponse(BaseModel):
    id: int
    driver_id: str
    delta: int
    reason: BagMovementReason
    balance_after: int
    dispatch_record_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BagReturnResponse(BaseModel):
    driver: DriverResponse
    movement: BagMovementResponse


class ImportLineResponse(BaseModel):
    line: str
    name: str
    action: str
    error: Optional[str] = None

    model_config = {"from_attributes": True}


class RosterResponse(BaseModel):
    day: date
    replaced: int
    scheduled: list[DispatchRecordResponse]
    skipped: list[str]


class RankingEntry(BaseModel):
    position: int
    driver_id: str
    name: str
    trip_count: int


class RankingResponse(BaseModel):
    start: datetime
    end: datetime
    rankings: list[RankingEntry]


class LogEntry(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
    exception: Optional[str] = None


class ClearedResponse(BaseModel):
    cleared: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
