"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``drivers``           -- driver registry, status and bag balance
* ``dispatch_records``  -- one check-in-to-dispatch cycle per row
* ``fraud_alerts``      -- advisory findings raised at check-in
* ``bag_movements``     -- append-only ledger behind ``drivers.bags_balance``

Concurrency
-----------
``drivers.version`` is the mapper's ``version_id_col``: every ORM UPDATE
carries ``WHERE version = :old`` and a concurrent writer gets
``StaleDataError`` instead of silently overwriting a status or a bag balance.

Indexes
-------
* **B-Tree** on ``status``, ``name``, ``device_id``, ``start_time`` and
  ``driver_id`` for the queue, check-in and report look-ups.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.types import TypeDecorator

from .database import Base
from src.domain.enums import (
    BagMovementReason,
    DispatchStatus,
    DriverStatus,
    FraudAlertKind,
    VehicleType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class UTCDateTime(TypeDecorator):
    """Stores aware datetimes normalised to UTC; always returns aware UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    vehicle_type = Column(
        Enum(
            VehicleType,
            name="vehicletype",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    status = Column(
        Enum(
            DriverStatus,
            name="driverstatus",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        default=DriverStatus.INACTIVE,
        nullable=False,
    )
    device_id = Column(String(128), nullable=True)
    bags_balance = Column(Integer, default=0, nullable=False)
    version = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("bags_balance >= 0", name="ck_drivers_bags_non_negative"),
        Index("idx_drivers_name", "name"),
        Index("idx_drivers_status", "status"),
        Index("idx_drivers_device", "device_id"),
    )


class DispatchRecordModel(Base):
    __tablename__ = "dispatch_records"

    id = Column(String(64), primary_key=True, default=new_id)
    driver_id = Column(
        String(64), ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    # Display snapshot only; joins always go through driver_id
    driver_name = Column(String(120), nullable=False)

    start_time = Column(UTCDateTime, nullable=True)
    end_time = Column(UTCDateTime, nullable=True)
    start_latitude = Column(Float, nullable=True)
    start_longitude = Column(Float, nullable=True)
    end_latitude = Column(Float, nullable=True)
    end_longitude = Column(Float, nullable=True)

    selfie_url = Column(Text, nullable=True)
    device_id = Column(String(128), nullable=True)
    status = Column(
        Enum(
            DispatchStatus,
            name="dispatchstatus",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        default=DispatchStatus.PENDING,
        nullable=False,
    )
    bags_taken = Column(Integer, nullable=True)
    destination_area = Column(String(120), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "bags_taken IS NULL OR bags_taken >= 0",
            name="ck_dispatch_bags_taken_non_negative",
        ),
        Index("idx_dispatch_status", "status"),
        Index("idx_dispatch_driver", "driver_id"),
        Index("idx_dispatch_device", "device_id"),
        Index("idx_dispatch_start_time", "start_time"),
    )


class FraudAlertModel(Base):
    __tablename__ = "fraud_alerts"

    id = Column(String(64), primary_key=True, default=new_id)
    kind = Column(
        Enum(
            FraudAlertKind,
            name="fraudalertkind",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    message = Column(Text, nullable=False)
    driver_name = Column(String(120), nullable=False)
    device_id = Column(String(128), nullable=True)
    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (Index("idx_fraud_alerts_created", "created_at"),)


class BagMovementModel(Base):
    __tablename__ = "bag_movements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(
        String(64), ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False
    )
    delta = Column(Integer, nullable=False)
    reason = Column(
        Enum(
            BagMovementReason,
            name="bagmovementreason",
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    balance_after = Column(Integer, nullable=False)
    dispatch_record_id = Column(
        String(64),
        ForeignKey("dispatch_records.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (Index("idx_bag_movements_driver", "driver_id"),)
