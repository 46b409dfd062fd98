"""Who may rate whom once a ride is over.  Ratings never change ride status."""

from __future__ import annotations

from .entities import Principal, RatingNotAllowed, Ride
from .enums import RatingType, RideStatus

MIN_RATING = 1.0
MAX_RATING = 5.0


def resolve_rating(ride: Ride, principal: Principal) -> tuple[str, RatingType]:
    """Return ``(to_user_id, rating_type)`` for a rating by *principal*."""
    if ride.status is not RideStatus.COMPLETED:
        raise RatingNotAllowed(
            f"Only completed rides can be rated (ride is {ride.status.value})"
        )
    if ride.driver_id is None:
        raise RatingNotAllowed("Ride has no driver to rate")
    if principal.id == ride.rider_id:
        return ride.driver_id, RatingType.RIDER_TO_DRIVER
    if principal.id == ride.driver_id:
        return ride.rider_id, RatingType.DRIVER_TO_RIDER
    raise RatingNotAllowed("Only the rider or driver of this ride may rate it")
