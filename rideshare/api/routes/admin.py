"""
Admin / observability endpoints
===============================

GET /api/v1/admin/rides  -- list rides, optionally filtered by status
GET /api/v1/admin/health -- simple health check
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.api.auth import require_role
from rideshare.api.dependencies import get_db
from rideshare.api.middleware import limiter
from rideshare.api.schemas import HealthResponse, RideResponse
from rideshare.config import settings
from rideshare.domain.entities import Principal
from rideshare.domain.enums import RideStatus, Role
from rideshare.infrastructure.repositories import RideRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/rides",
    response_model=list[RideResponse],
    summary="List rides across all users",
)
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    status: RideStatus | None = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_role(Role.ADMIN)),
):
    rides = await RideRepository(db).list_rides(status=status, limit=limit)
    return [RideResponse.from_entity(r) for r in rides]


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
