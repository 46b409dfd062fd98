"""
Ride endpoints
==============

POST  /api/v1/rides                 -- request a ride (riders)
GET   /api/v1/rides                 -- rides the caller takes part in
GET   /api/v1/rides/open            -- search unassigned PENDING rides (drivers)
GET   /api/v1/rides/{ride_id}       -- ride details
GET   /api/v1/rides/{ride_id}/progress -- status tracker steps
PATCH /api/v1/rides/{ride_id}/status   -- move the ride along its lifecycle
PATCH /api/v1/rides/{ride_id}/cancel   -- cancel a ride
POST  /api/v1/rides/{ride_id}/ratings  -- rate the other party after completion
"""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.api.auth import get_current_principal, require_role
from rideshare.api.dependencies import get_db, get_transition_service
from rideshare.api.middleware import limiter
from rideshare.api.schemas import (
    CancelRequest,
    ErrorResponse,
    RatingCreateRequest,
    RatingResponse,
    RideCreateRequest,
    RideResponse,
    StatusUpdateRequest,
    StepResponse,
    TransitionResponse,
)
from rideshare.config import settings
from rideshare.domain.entities import Location, Principal, Ride, RideNotFound
from rideshare.domain.enums import RideStatus, Role
from rideshare.domain.lifecycle import derive_view_model
from rideshare.domain.search import DEFAULT_RADIUS_KM, RideFilter, RideSort, search_rides
from rideshare.infrastructure.repositories import RideRepository
from rideshare.services.ratings import rate_ride
from rideshare.services.transitions import TransitionService

router = APIRouter(prefix="/rides", tags=["rides"])

LIFECYCLE_ERRORS = {
    400: {"model": ErrorResponse, "description": "Ride is already in that status"},
    403: {"model": ErrorResponse, "description": "Caller may not make this change"},
    404: {"model": ErrorResponse, "description": "Ride not found"},
    409: {
        "model": ErrorResponse,
        "description": "Invalid transition or ride changed concurrently",
    },
}

RATING_ERRORS = {
    404: {"model": ErrorResponse, "description": "Ride not found"},
    409: {"model": ErrorResponse, "description": "Ride cannot be rated by the caller"},
}


def _can_view(ride: Ride, principal: Principal) -> bool:
    if principal.role is Role.ADMIN:
        return True
    if principal.id in (ride.rider_id, ride.driver_id):
        return True
    # Drivers browse open requests before accepting one.
    return principal.role is Role.DRIVER and ride.status is RideStatus.PENDING


async def _get_visible_ride(
    db: AsyncSession, ride_id: str, principal: Principal
) -> Ride:
    ride = await RideRepository(db).get_by_id(ride_id)
    if ride is None:
        raise RideNotFound(ride_id)
    if not _can_view(ride, principal):
        raise HTTPException(status_code=403, detail="You are not part of this ride")
    return ride


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Request a ride",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_role(Role.RIDER)),
):
    repo = RideRepository(db)

    # ── Idempotency guard (per rider) ─────────────────────────────
    if body.idempotency_key:
        existing = await repo.get_by_idempotency_key(
            body.idempotency_key, rider_id=principal.id
        )
        if existing:
            return RideResponse.from_entity(existing)

    try:
        ride = await repo.create_ride(
            rider_id=principal.id,
            pickup=Location(body.pickup_lat, body.pickup_lng),
            dropoff=Location(body.dropoff_lat, body.dropoff_lng),
            seats_requested=body.seats_requested,
            idempotency_key=body.idempotency_key,
            requested_at=datetime.now(timezone.utc),
        )
    except IntegrityError:
        # A concurrent retry with the same key won the insert.
        await db.rollback()
        if not body.idempotency_key:
            raise
        existing = await repo.get_by_idempotency_key(
            body.idempotency_key, rider_id=principal.id
        )
        if existing is None:
            raise
        return RideResponse.from_entity(existing)
    await db.commit()
    return RideResponse.from_entity(ride)


@router.get("", response_model=list[RideResponse], summary="List my rides")
@limiter.limit(settings.rate_limit)
async def list_my_rides(
    request: Request,
    status: RideStatus | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rides = await RideRepository(db).list_rides(
        status=status, participant_id=principal.id
    )
    return [RideResponse.from_entity(r) for r in rides]


def _point(lat: float | None, lng: float | None, name: str) -> Location | None:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise HTTPException(
            status_code=422, detail=f"{name}_lat and {name}_lng must be given together"
        )
    return Location(lat, lng)


@router.get(
    "/open",
    response_model=list[RideResponse],
    summary="Search ride requests waiting for a driver",
    description=(
        "Optional filters: pickup near a point, dropoff near a destination, "
        "request date (UTC), seats the vehicle can carry and minimum fare."
    ),
)
@limiter.limit(settings.rate_limit)
async def list_open_rides(
    request: Request,
    near_lat: float | None = Query(None, ge=-90, le=90),
    near_lng: float | None = Query(None, ge=-180, le=180),
    dest_lat: float | None = Query(None, ge=-90, le=90),
    dest_lng: float | None = Query(None, ge=-180, le=180),
    radius_km: float = Query(DEFAULT_RADIUS_KM, gt=0, le=100),
    requested_on: date | None = None,
    max_seats: int | None = Query(None, ge=1, le=6),
    min_fare: float | None = Query(None, ge=0),
    sort_by: RideSort = RideSort.REQUESTED,
    descending: bool = False,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_role(Role.DRIVER)),
):
    flt = RideFilter(
        near=_point(near_lat, near_lng, "near"),
        destination=_point(dest_lat, dest_lng, "dest"),
        radius_km=radius_km,
        requested_on=requested_on,
        max_seats=max_seats,
        min_fare=min_fare,
        sort_by=sort_by,
        descending=descending,
    )
    rides = await RideRepository(db).list_rides(status=RideStatus.PENDING, limit=500)
    candidates = [r for r in rides if r.rider_id != principal.id]
    return [RideResponse.from_entity(r) for r in search_rides(candidates, flt)]


@router.get("/{ride_id}", response_model=RideResponse, summary="Get ride details")
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    ride = await _get_visible_ride(db, ride_id, principal)
    return RideResponse.from_entity(ride)


@router.get(
    "/{ride_id}/progress",
    response_model=list[StepResponse],
    summary="Status tracker steps for a ride",
)
@limiter.limit(settings.rate_limit)
async def get_ride_progress(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    ride = await _get_visible_ride(db, ride_id, principal)
    return [StepResponse.from_step(step) for step in derive_view_model(ride)]


@router.patch(
    "/{ride_id}/status",
    response_model=TransitionResponse,
    summary="Move a ride to its next status",
    responses=LIFECYCLE_ERRORS,
    description=(
        "ACCEPTED may be requested by any driver on a PENDING ride; "
        "IN_PROGRESS and COMPLETED only by the assigned driver; "
        "CANCELLED by the rider, the assigned driver or an admin."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_ride_status(
    request: Request,
    ride_id: str,
    body: StatusUpdateRequest,
    service: TransitionService = Depends(get_transition_service),
    principal: Principal = Depends(get_current_principal),
):
    result = await service.transition(ride_id, body.status, principal, body.reason)
    ride = await service.load(ride_id)
    return TransitionResponse.from_result(result, ride)


@router.patch(
    "/{ride_id}/cancel",
    response_model=TransitionResponse,
    summary="Cancel a ride",
    responses=LIFECYCLE_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: str,
    body: CancelRequest | None = None,
    service: TransitionService = Depends(get_transition_service),
    principal: Principal = Depends(get_current_principal),
):
    reason = body.reason if body else None
    result = await service.transition(
        ride_id, RideStatus.CANCELLED, principal, reason
    )
    ride = await service.load(ride_id)
    return TransitionResponse.from_result(result, ride)


@router.post(
    "/{ride_id}/ratings",
    status_code=201,
    response_model=RatingResponse,
    summary="Rate the other party of a completed ride",
    responses=RATING_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def create_rating(
    request: Request,
    ride_id: str,
    body: RatingCreateRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rating = await rate_ride(db, ride_id, principal, body.value, body.comment)
    return RatingResponse.model_validate(rating)
