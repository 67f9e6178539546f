"""
FastAPI application factory.

* Registers routes for auth, check-in, queue, bags, drivers, reports and admin.
* Maps domain errors, lock contention and stale versions to JSON responses.
* Installs the in-memory log buffer behind the admin log viewer.
* Serves stored selfies under ``/storage``.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm.exc import StaleDataError

from src.api.middleware import limiter
from src.api.routes import admin, auth, bags, check_in, drivers, queue, reports
from src.config import settings
from src.domain.errors import DomainError
from src.infrastructure import log_buffer
from src.infrastructure.locks import LockBusy

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def _lock_busy_handler(request: Request, exc: LockBusy):
    logger.warning("%s is held; refused %s", exc.key, request.url.path)
    return JSONResponse(
        status_code=409,
        content={"detail": "Another queue operation is in progress; try again"},
    )


async def _stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning("Version conflict on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=409,
        content={"detail": "The record was modified concurrently; reload and retry"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Dispatch Tracking API",
        description=(
            "Driver check-in with selfie and geofence, a coordinator-run "
            "dispatch queue with returnable bag tracking, fraud heuristics "
            "and administrator reports."
        ),
        version="1.0.0",
    )

    log_buffer.install(settings.log_buffer_size, settings.log_buffer_level)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Error mapping
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(LockBusy, _lock_busy_handler)
    app.add_exception_handler(StaleDataError, _stale_data_handler)

    # Routers
    for module in (auth, check_in, queue, bags, drivers, reports, admin):
        app.include_router(module.router, prefix="/api/v1")

    # Public selfie URLs resolve here
    storage_root = Path(settings.selfie_dir)
    storage_root.mkdir(parents=True, exist_ok=True)
    app.mount("/storage", StaticFiles(directory=storage_root), name="storage")

    return app
