"""
Ride lifecycle: transition decisions, authorization and derived views.

Everything in this module is a pure function of its arguments.  Nothing is
persisted or published here; :class:`TransitionResult` tells the caller what
to write (with a compare-and-swap on the prior status) and which
notification to emit once the write has committed.

Transition table
----------------
PENDING -> ACCEPTED | CANCELLED
ACCEPTED -> IN_PROGRESS | CANCELLED
IN_PROGRESS -> COMPLETED | CANCELLED
COMPLETED, CANCELLED are terminal.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from .entities import (
    InvalidTransition,
    NoOpTransition,
    Notification,
    Principal,
    Ride,
    StepView,
    TransitionResult,
    UnauthorizedTransition,
)
from .enums import (
    FORWARD_STATUSES,
    RIDE_TRANSITIONS,
    STATUS_META,
    NotificationType,
    RideStatus,
    Role,
)

logger = logging.getLogger(__name__)


NOTIFICATION_MESSAGES: dict[NotificationType, str] = {
    NotificationType.RIDE_ACCEPTED: "A driver has accepted your ride request.",
    NotificationType.RIDE_STARTED: "Your ride has started.",
    NotificationType.RIDE_COMPLETED: "Your ride is complete. How was your trip?",
    NotificationType.RIDE_CANCELED: "Your ride has been cancelled.",
}


def can_transition(current: RideStatus, requested: RideStatus) -> bool:
    return requested in RIDE_TRANSITIONS.get(current, set())


def is_authorized(ride: Ride, requested: RideStatus, principal: Principal) -> bool:
    """Whether *principal* may move *ride* to *requested* (legality aside)."""
    if requested is RideStatus.ACCEPTED:
        return principal.role is Role.DRIVER
    if requested in (RideStatus.IN_PROGRESS, RideStatus.COMPLETED):
        return ride.driver_id is not None and principal.id == ride.driver_id
    if requested is RideStatus.CANCELLED:
        return (
            principal.role is Role.ADMIN
            or principal.id == ride.rider_id
            or (ride.driver_id is not None and principal.id == ride.driver_id)
        )
    return False


def derive_notification(
    ride: Ride, new_status: RideStatus, principal: Principal
) -> Notification:
    """The single notification emitted when *ride* enters *new_status*."""
    notification_type = STATUS_META[new_status].notification
    if notification_type is None:
        raise ValueError(f"No notification for status {new_status.value}")

    target = ride.rider_id
    rateable = False
    if new_status is RideStatus.CANCELLED:
        # Notify the other party; without a driver only the rider is told.
        if principal.id == ride.rider_id and ride.driver_id is not None:
            target = ride.driver_id
    elif new_status is RideStatus.COMPLETED:
        rateable = not ride.rider_rated

    return Notification(
        type=notification_type,
        target_user_id=target,
        message=NOTIFICATION_MESSAGES[notification_type],
        ride_id=ride.id,
        rateable=rateable,
    )


def attempt_transition(
    ride: Ride,
    requested: RideStatus,
    principal: Principal,
    *,
    at: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> TransitionResult:
    """Decide whether *principal* may move *ride* to *requested*.

    Raises :class:`NoOpTransition`, :class:`InvalidTransition` or
    :class:`UnauthorizedTransition`.  *ride* is never mutated.
    """
    current = ride.status
    if requested == current:
        raise NoOpTransition(current)
    if not can_transition(current, requested):
        raise InvalidTransition(current, requested)
    if not is_authorized(ride, requested, principal):
        logger.warning(
            "Refused transition ride=%s %s->%s principal=%s role=%s",
            ride.id,
            current.value,
            requested.value,
            principal.id,
            principal.role.value,
        )
        raise UnauthorizedTransition(current, requested, principal.role)

    entered_at = at or datetime.now(timezone.utc)
    changes: dict = {}
    if requested is RideStatus.ACCEPTED:
        changes["driver_id"] = principal.id
    if requested is RideStatus.CANCELLED and reason:
        changes["cancel_reason"] = reason

    # Build the notification against the ride as it will look afterwards.
    after = Ride(
        id=ride.id,
        rider_id=ride.rider_id,
        driver_id=changes.get("driver_id", ride.driver_id),
        status=requested,
        rider_rated=ride.rider_rated,
    )
    timestamps = dict(ride.timestamps)
    timestamps[requested.value] = entered_at

    return TransitionResult(
        ride_id=ride.id,
        previous_status=current,
        new_status=requested,
        entered_at=entered_at,
        timestamps=timestamps,
        notification=derive_notification(after, requested, principal),
        changes=changes,
    )


def _reached_index(ride: Ride) -> int:
    reached = 0
    for index, status in enumerate(FORWARD_STATUSES):
        if status.value in ride.timestamps:
            reached = index
    return reached


def derive_view_model(ride: Ride) -> list[StepView]:
    """Ordered progress steps for presentation."""
    cancelled = ride.status is RideStatus.CANCELLED
    if cancelled:
        reached = _reached_index(ride)
    else:
        reached = FORWARD_STATUSES.index(ride.status)

    steps: list[StepView] = []
    for index, status in enumerate(FORWARD_STATUSES):
        meta = STATUS_META[status]
        description = meta.description
        if ride.driver_assigned and meta.description_with_driver:
            description = meta.description_with_driver

        if cancelled:
            is_completed = index <= reached
            is_current = False
            is_future = False
            is_skipped = index > reached
        else:
            is_completed = index < reached
            is_current = index == reached
            is_future = index > reached
            is_skipped = False

        steps.append(
            StepView(
                key=status,
                label=meta.label,
                description=description,
                badge=meta.badge,
                is_completed=is_completed,
                is_current=is_current,
                is_future=is_future,
                is_skipped=is_skipped,
                timestamp=ride.timestamps.get(status.value),
                actor=meta.actor,
            )
        )

    if cancelled:
        meta = STATUS_META[RideStatus.CANCELLED]
        steps.append(
            StepView(
                key=RideStatus.CANCELLED,
                label=meta.label,
                description=meta.description,
                badge=meta.badge,
                is_completed=False,
                is_current=True,
                is_future=False,
                timestamp=ride.timestamps.get(RideStatus.CANCELLED.value),
                actor=meta.actor,
            )
        )
    return steps
