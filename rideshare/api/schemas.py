"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from rideshare.domain.entities import Ride, StepView, TransitionResult
from rideshare.domain.enums import NotificationType, RatingType, RideStatus
from rideshare.domain.pricing import format_fare
from rideshare.domain.ratings import MAX_RATING, MIN_RATING


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    pickup_lat: float = Field(..., ge=-90, le=90)
    pickup_lng: float = Field(..., ge=-180, le=180)
    dropoff_lat: float = Field(..., ge=-90, le=90)
    dropoff_lng: float = Field(..., ge=-180, le=180)
    seats_requested: int = Field(1, ge=1, le=6)
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated UUID to prevent double-booking on retries.",
    )


class StatusUpdateRequest(BaseModel):
    status: RideStatus
    reason: Optional[str] = Field(None, max_length=255)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class RatingCreateRequest(BaseModel):
    value: float = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[str] = Field(None, max_length=1000)


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(BaseModel):
    id: str
    rider_id: str
    driver_id: Optional[str] = None
    status: RideStatus
    pickup_lat: float
    pickup_lng: float
    dropoff_lat: float
    dropoff_lng: float
    distance_km: Optional[float] = None
    seats_requested: int
    price: Optional[float] = None
    currency: str = "INR"
    price_display: str = ""
    timestamps: dict[str, datetime] = {}
    rider_rated: bool = False
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, ride: Ride) -> "RideResponse":
        return cls(
            id=ride.id,
            rider_id=ride.rider_id,
            driver_id=ride.driver_id,
            status=ride.status,
            pickup_lat=ride.pickup.latitude,
            pickup_lng=ride.pickup.longitude,
            dropoff_lat=ride.dropoff.latitude,
            dropoff_lng=ride.dropoff.longitude,
            distance_km=ride.distance_km,
            seats_requested=ride.seats_requested,
            price=ride.price,
            currency=ride.currency,
            price_display=format_fare(ride.price, ride.currency),
            timestamps=ride.timestamps,
            rider_rated=ride.rider_rated,
            cancel_reason=ride.cancel_reason,
            created_at=ride.created_at,
        )


class NotificationResponse(BaseModel):
    type: NotificationType
    target_user_id: str
    message: str
    ride_id: str
    rateable: bool = False
    timestamp: Optional[datetime] = None


class TransitionResponse(BaseModel):
    accepted: bool
    ride_id: str
    previous_status: RideStatus
    new_status: RideStatus
    entered_at: datetime
    notification: NotificationResponse
    ride: RideResponse

    @classmethod
    def from_result(cls, result: TransitionResult, ride: Ride) -> "TransitionResponse":
        return cls(
            accepted=result.accepted,
            ride_id=result.ride_id,
            previous_status=result.previous_status,
            new_status=result.new_status,
            entered_at=result.entered_at,
            notification=NotificationResponse(**result.notification.to_dict()),
            ride=RideResponse.from_entity(ride),
        )


class StepResponse(BaseModel):
    key: RideStatus
    label: str
    description: str
    badge: str
    is_completed: bool
    is_current: bool
    is_future: bool
    is_skipped: bool
    timestamp: Optional[datetime] = None
    actor: str = ""

    @classmethod
    def from_step(cls, step: StepView) -> "StepResponse":
        return cls(
            key=step.key,
            label=step.label,
            description=step.description,
            badge=step.badge,
            is_completed=step.is_completed,
            is_current=step.is_current,
            is_future=step.is_future,
            is_skipped=step.is_skipped,
            timestamp=step.timestamp,
            actor=step.actor,
        )


class RatingResponse(BaseModel):
    id: str
    ride_id: str
    from_user_id: str
    to_user_id: str
    value: float
    comment: Optional[str] = None
    type: RatingType

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
