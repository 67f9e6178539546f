"""
Bag ledger endpoints
====================

GET  /api/v1/bags/holders                -- drivers holding bags
POST /api/v1/bags/returns                -- record a bag return
GET  /api/v1/bags/drivers/{id}/movements -- ledger for one driver
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_event_bus, require_coordinator
from src.api.middleware import limiter
from src.api.schemas import (
    BagMovementResponse,
    BagReturnRequest,
    BagReturnResponse,
    DriverResponse,
)
from src.config import settings
from src.infrastructure.events import EventBus
from src.services import bags

router = APIRouter(
    prefix="/bags", tags=["bags"], dependencies=[Depends(require_coordinator)]
)


@router.get("/holders", response_model=list[DriverResponse], summary="Bag holders")
@limiter.limit(settings.rate_limit)
async def holders(request: Request, db: AsyncSession = Depends(get_db)):
    return await bags.holders(db)


@router.post(
    "/returns",
    response_model=BagReturnResponse,
    summary="Return bags",
    description="Rejected with 409 when the count exceeds the driver's balance.",
)
@limiter.limit(settings.rate_limit)
async def return_bags(
    request: Request,
    body: BagReturnRequest,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    driver, movement = await bags.return_bags(db, body.driver_id, body.count)
    await db.commit()
    await events.publish(
        "bags_returned",
        driver_id=driver.id,
        count=body.count,
        balance=driver.bags_balance,
    )
    return BagReturnResponse(
        driver=DriverResponse.model_validate(driver),
        movement=BagMovementResponse.model_validate(movement),
    )


@router.get(
    "/drivers/{driver_id}/movements",
    response_model=list[BagMovementResponse],
    summary="Bag ledger for a driver",
)
@limiter.limit(settings.rate_limit)
async def movements(
    request: Request, driver_id: str, db: AsyncSession = Depends(get_db)
):
    return await bags.movements(db, driver_id)
