"""
Domain entities, value objects and the lifecycle error hierarchy.

Entities here carry data only; the decisions that change a ride's status
live in :mod:`rideshare.domain.lifecycle` so that every caller (API
handlers, seed scripts, tests) goes through the same transition table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import NotificationType, RideStatus, Role


# ── Errors ────────────────────────────────────────────────────────────


class RideLifecycleError(Exception):
    """Base class for every refused ride operation."""

    code = "lifecycle_error"


class InvalidTransition(RideLifecycleError):
    """Requested destination is not reachable from the current status."""

    code = "invalid_transition"

    def __init__(self, current: RideStatus, requested: RideStatus):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition from {current.value} to {requested.value}"
        )


class NoOpTransition(InvalidTransition):
    """Requested status equals the current status.

    Self-transitions are never in the table, so this is a kind of
    :class:`InvalidTransition` with its own code; callers may treat it as a
    harmless repeat.
    """

    code = "noop_transition"

    def __init__(self, status: RideStatus):
        super().__init__(status, status)
        self.status = status
        self.args = (f"Ride is already {status.value}",)


class UnauthorizedTransition(RideLifecycleError):
    """Principal may not perform this transition."""

    code = "unauthorized"

    def __init__(self, current: RideStatus, requested: RideStatus, role: Role):
        self.current = current
        self.requested = requested
        self.role = role
        super().__init__(
            f"Role {role.value} may not move this ride from "
            f"{current.value} to {requested.value}"
        )


class TransitionConflict(RideLifecycleError):
    """Another writer changed the ride's status first."""

    code = "conflict"

    def __init__(self, ride_id: str, expected: RideStatus):
        self.ride_id = ride_id
        self.expected = expected
        super().__init__("Ride state changed, please refresh")


class RideNotFound(RideLifecycleError):
    code = "not_found"

    def __init__(self, ride_id: str):
        self.ride_id = ride_id
        super().__init__("Ride not found")


class RatingNotAllowed(RideLifecycleError):
    code = "rating_not_allowed"


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Principal:
    """An authenticated actor, supplied by the caller."""

    id: str
    role: Role


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    target_user_id: str
    message: str
    ride_id: str
    rateable: bool = False

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "target_user_id": self.target_user_id,
            "message": self.message,
            "ride_id": self.ride_id,
            "rateable": self.rateable,
        }


@dataclass(frozen=True)
class TransitionResult:
    ride_id: str
    previous_status: RideStatus
    new_status: RideStatus
    entered_at: datetime
    timestamps: dict[str, datetime]
    notification: Notification
    changes: dict = field(default_factory=dict)
    accepted: bool = True
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class StepView:
    key: RideStatus
    label: str
    description: str
    badge: str
    is_completed: bool
    is_current: bool
    is_future: bool
    is_skipped: bool = False
    timestamp: Optional[datetime] = None
    # who moves a ride into this step
    actor: str = ""


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: str = ""
    rider_id: str = ""
    driver_id: Optional[str] = None
    status: RideStatus = RideStatus.PENDING
    timestamps: dict[str, datetime] = field(default_factory=dict)
    rider_rated: bool = False
    pickup: Location = field(default_factory=lambda: Location(0, 0))
    dropoff: Location = field(default_factory=lambda: Location(0, 0))
    seats_requested: int = 1
    distance_km: Optional[float] = None
    price: Optional[float] = None
    currency: str = "INR"
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def driver_assigned(self) -> bool:
        return self.driver_id is not None
