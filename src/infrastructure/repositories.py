"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Methods suffixed ``_for_update`` issue
``SELECT ... FOR UPDATE`` so the rows stay locked until the request
transaction ends (ignored by SQLite in tests).
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    BagMovementModel,
    DispatchRecordModel,
    DriverModel,
    FraudAlertModel,
)
from src.domain.enums import (
    ACTIVE_DISPATCH_STATUSES,
    DispatchStatus,
    DriverStatus,
    VehicleType,
)


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, driver: DriverModel) -> DriverModel:
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def get_by_id(self, driver_id: str) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_by_id_for_update(self, driver_id: str) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.id == driver_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Optional[DriverModel]:
        # Names are unique in practice only; the oldest row wins
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.name == name)
            .order_by(DriverModel.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_name_for_update(self, name: str) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.name == name)
            .order_by(DriverModel.created_at)
            .limit(1)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_device(self, device_id: str) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.device_id == device_id)
            .order_by(DriverModel.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_by_device_for_update(self, device_id: str) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.device_id == device_id)
            .order_by(DriverModel.id)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).order_by(DriverModel.name)
        )
        return list(result.scalars().all())

    async def list_unbound(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.device_id.is_(None))
            .order_by(DriverModel.name)
        )
        return list(result.scalars().all())

    async def list_by_status_for_update(
        self, status: DriverStatus, ids: Optional[Iterable[str]] = None
    ) -> list[DriverModel]:
        query = select(DriverModel).where(DriverModel.status == status)
        if ids is not None:
            query = query.where(DriverModel.id.in_(list(ids)))
        result = await self.session.execute(
            query.order_by(DriverModel.id).with_for_update()
        )
        return list(result.scalars().all())

    async def list_with_bags(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.bags_balance > 0)
            .order_by(DriverModel.name)
        )
        return list(result.scalars().all())

    async def adjust_bags(self, driver_id: str, delta: int) -> bool:
        """
        Single conditional UPDATE on the balance.  A withdrawal only matches
        while ``bags_balance >= -delta``, so two concurrent returns can never
        drive the balance below zero.  Returns False when nothing matched.
        """
        stmt = (
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(
                bags_balance=DriverModel.bags_balance + delta,
                version=DriverModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            stmt = stmt.where(DriverModel.bags_balance >= -delta)
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def reload(self, driver_id: str) -> Optional[DriverModel]:
        """Re-read the row, overwriting the copy held in the identity map."""
        return await self.session.get(
            DriverModel, driver_id, populate_existing=True
        )

    async def delete(self, driver: DriverModel) -> None:
        await self.session.delete(driver)
        await self.session.flush()


class DispatchRecordRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, record: DispatchRecordModel) -> DispatchRecordModel:
        self.session.add(record)
        await self.session.flush()
        return record

    async def add_all(self, records: Sequence[DispatchRecordModel]) -> None:
        self.session.add_all(records)
        await self.session.flush()

    async def get_by_id(self, record_id: str) -> Optional[DispatchRecordModel]:
        return await self.session.get(DispatchRecordModel, record_id)

    async def get_by_id_for_update(
        self, record_id: str
    ) -> Optional[DispatchRecordModel]:
        result = await self.session.execute(
            select(DispatchRecordModel)
            .where(DispatchRecordModel.id == record_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_active_for_driver(
        self, driver_id: str
    ) -> Optional[DispatchRecordModel]:
        result = await self.session.execute(
            select(DispatchRecordModel)
            .where(
                DispatchRecordModel.driver_id == driver_id,
                DispatchRecordModel.status.in_(ACTIVE_DISPATCH_STATUSES),
            )
            .order_by(DispatchRecordModel.start_time)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_for_driver_in_statuses_for_update(
        self, driver_id: str, statuses: Sequence[DispatchStatus]
    ) -> list[DispatchRecordModel]:
        result = await self.session.execute(
            select(DispatchRecordModel)
            .where(
                DispatchRecordModel.driver_id == driver_id,
                DispatchRecordModel.status.in_(statuses),
            )
            .order_by(DispatchRecordModel.start_time)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def device_has_active_entry(self, device_id: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(DispatchRecordModel)
            .where(
                DispatchRecordModel.device_id == device_id,
                DispatchRecordModel.status.in_(ACTIVE_DISPATCH_STATUSES),
            )
        )
        return (result.scalar() or 0) > 0

    async def list_in_statuses_for_update(
        self,
        statuses: Sequence[DispatchStatus],
        before: Optional[datetime] = None,
    ) -> list[DispatchRecordModel]:
        query = select(DispatchRecordModel).where(
            DispatchRecordModel.status.in_(statuses)
        )
        if before is not None:
            query = query.where(DispatchRecordModel.start_time < before)
        result = await self.session.execute(
            query.order_by(DispatchRecordModel.start_time).with_for_update()
        )
        return list(result.scalars().all())

    async def detach_driver(self, driver_id: str) -> int:
        """Null the driver reference; records keep their name snapshot."""
        result = await self.session.execute(
            update(DispatchRecordModel)
            .where(DispatchRecordModel.driver_id == driver_id)
            .values(driver_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def get_queue(
        self,
        statuses: Sequence[DispatchStatus] = ACTIVE_DISPATCH_STATUSES,
        vehicle_type: Optional[VehicleType] = None,
    ) -> list[tuple[DispatchRecordModel, Optional[VehicleType]]]:
        """Active records with the driver's vehicle type, oldest first."""
        query = (
            select(DispatchRecordModel, DriverModel.vehicle_type)
            .outerjoin(DriverModel, DriverModel.id == DispatchRecordModel.driver_id)
            .where(DispatchRecordModel.status.in_(statuses))
            .order_by(DispatchRecordModel.start_time, DispatchRecordModel.id)
        )
        if vehicle_type is not None:
            query = query.where(DriverModel.vehicle_type == vehicle_type)
        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def list_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Optional[Sequence[DispatchStatus]] = None,
    ) -> list[DispatchRecordModel]:
        """Records whose start time lies in [start, end), newest first."""
        query = select(DispatchRecordModel).where(
            DispatchRecordModel.start_time >= start,
            DispatchRecordModel.start_time < end,
        )
        if statuses is not None:
            query = query.where(DispatchRecordModel.status.in_(statuses))
        result = await self.session.execute(
            query.order_by(DispatchRecordModel.start_time.desc())
        )
        return list(result.scalars().all())

    async def delete_scheduled_between(self, start: datetime, end: datetime) -> int:
        """
        Delete roster-created ``pending`` rows in [start, end).  Check-in
        rows always carry the device id and are never touched.
        """
        result = await self.session.execute(
            delete(DispatchRecordModel)
            .where(
                DispatchRecordModel.status == DispatchStatus.PENDING,
                DispatchRecordModel.device_id.is_(None),
                DispatchRecordModel.start_time >= start,
                DispatchRecordModel.start_time < end,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class FraudAlertRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, alert: FraudAlertModel) -> FraudAlertModel:
        self.session.add(alert)
        await self.session.flush()
        return alert

    async def list_recent(self, limit: int = 200) -> list[FraudAlertModel]:
        result = await self.session.execute(
            select(FraudAlertModel)
            .order_by(FraudAlertModel.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def clear(self) -> int:
        result = await self.session.execute(
            delete(FraudAlertModel).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class BagMovementRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, movement: BagMovementModel) -> BagMovementModel:
        self.session.add(movement)
        await self.session.flush()
        return movement

    async def list_for_driver(self, driver_id: str) -> list[BagMovementModel]:
        result = await self.session.execute(
            select(BagMovementModel)
            .where(BagMovementModel.driver_id == driver_id)
            .order_by(BagMovementModel.created_at.desc(), BagMovementModel.id.desc())
        )
        return list(result.scalars().all())

    async def delete_for_driver(self, driver_id: str) -> None:
        await self.session.execute(
            delete(BagMovementModel)
            .where(BagMovementModel.driver_id == driver_id)
            .execution_options(synchronize_session=False)
        )
