"""
FastAPI application factory.

* Registers routes for rides, notifications and admin.
* Maps lifecycle errors to HTTP responses in one place.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rideshare.api.middleware import limiter
from rideshare.api.routes import admin, notifications, rides
from rideshare.domain.entities import (
    InvalidTransition,
    NoOpTransition,
    RatingNotAllowed,
    RideLifecycleError,
    RideNotFound,
    TransitionConflict,
    UnauthorizedTransition,
)
from rideshare.infrastructure.redis_client import close_redis

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[RideLifecycleError], int] = {
    InvalidTransition: 409,
    UnauthorizedTransition: 403,
    NoOpTransition: 400,
    TransitionConflict: 409,
    RideNotFound: 404,
    RatingNotAllowed: 409,
}


async def lifecycle_error_handler(request: Request, exc: RideLifecycleError):
    return JSONResponse(
        status_code=ERROR_STATUS.get(type(exc), 400),
        content={"detail": str(exc), "code": exc.code},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Community RideShare API starting")
    yield
    await close_redis()
    logger.info("Community RideShare API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Community RideShare API",
        description=(
            "Riders request rides, drivers accept, start and complete them. "
            "Every status change is checked against the ride lifecycle, "
            "written with optimistic concurrency and announced to the other "
            "party."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RideLifecycleError, lifecycle_error_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
