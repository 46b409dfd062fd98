"""Domain enumerations, state-transition rules and per-status metadata."""

import enum
from dataclasses import dataclass


class RideStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Role(str, enum.Enum):
    RIDER = "RIDER"
    DRIVER = "DRIVER"
    ADMIN = "ADMIN"


class NotificationType(str, enum.Enum):
    RIDE_ACCEPTED = "ride_accepted"
    RIDE_STARTED = "ride_started"
    RIDE_COMPLETED = "ride_completed"
    RIDE_CANCELED = "ride_canceled"


class RatingType(str, enum.Enum):
    RIDER_TO_DRIVER = "RIDER_TO_DRIVER"
    DRIVER_TO_RIDER = "DRIVER_TO_RIDER"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.PENDING: {RideStatus.ACCEPTED, RideStatus.CANCELLED},
    RideStatus.ACCEPTED: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# Canonical forward order used by the progress view.
FORWARD_STATUSES: tuple[RideStatus, ...] = (
    RideStatus.PENDING,
    RideStatus.ACCEPTED,
    RideStatus.IN_PROGRESS,
    RideStatus.COMPLETED,
)

TERMINAL_STATUSES = frozenset(s for s, nxt in RIDE_TRANSITIONS.items() if not nxt)


@dataclass(frozen=True)
class StatusMeta:
    label: str
    badge: str
    description: str
    actor: str
    notification: NotificationType | None = None
    # PENDING reads differently once a driver is attached
    description_with_driver: str | None = None


STATUS_META: dict[RideStatus, StatusMeta] = {
    RideStatus.PENDING: StatusMeta(
        label="Requested",
        badge="warning",
        description="Looking for a driver to accept your ride request.",
        description_with_driver="Your ride request is pending confirmation from the driver.",
        actor="rider",
    ),
    RideStatus.ACCEPTED: StatusMeta(
        label="Accepted",
        badge="info",
        description=(
            "A driver has accepted your ride request and will arrive at the "
            "pickup location."
        ),
        actor="driver",
        notification=NotificationType.RIDE_ACCEPTED,
    ),
    RideStatus.IN_PROGRESS: StatusMeta(
        label="In Progress",
        badge="primary",
        description="Your ride is in progress. Enjoy your journey!",
        actor="assigned driver",
        notification=NotificationType.RIDE_STARTED,
    ),
    RideStatus.COMPLETED: StatusMeta(
        label="Completed",
        badge="success",
        description=(
            "Your ride has been completed. Thank you for using Community RideShare!"
        ),
        actor="assigned driver",
        notification=NotificationType.RIDE_COMPLETED,
    ),
    RideStatus.CANCELLED: StatusMeta(
        label="Cancelled",
        badge="danger",
        description="This ride has been cancelled.",
        actor="rider, assigned driver or admin",
        notification=NotificationType.RIDE_CANCELED,
    ),
}
