"""
Filtering and ordering of open ride requests for drivers.

Filters
-------
* **near / radius_km**: pickup within *radius_km* of the driver's position.
* **destination / radius_km**: dropoff within *radius_km* of a target point.
* **requested_on**: UTC calendar day the request was made.
* **max_seats**: requests the driver's vehicle can carry.
* **min_fare**: requests worth at least this much.

Complexity: O(n log n) for n open rides.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, timezone
from typing import Iterable, Optional

from .distance import haversine_km
from .entities import Location, Ride
from .enums import RideStatus

DEFAULT_RADIUS_KM = 5.0


class RideSort(str, enum.Enum):
    REQUESTED = "requested"
    FARE = "fare"
    PICKUP_DISTANCE = "pickup_distance"


@dataclass(frozen=True)
class RideFilter:
    near: Optional[Location] = None
    destination: Optional[Location] = None
    radius_km: float = DEFAULT_RADIUS_KM
    requested_on: Optional[date] = None
    max_seats: Optional[int] = None
    min_fare: Optional[float] = None
    sort_by: RideSort = RideSort.REQUESTED
    descending: bool = False


def _requested_at(ride: Ride):
    return ride.timestamps.get(RideStatus.PENDING.value) or ride.created_at


def matches(ride: Ride, flt: RideFilter) -> bool:
    if flt.near is not None and haversine_km(flt.near, ride.pickup) > flt.radius_km:
        return False
    if (
        flt.destination is not None
        and haversine_km(flt.destination, ride.dropoff) > flt.radius_km
    ):
        return False
    if flt.requested_on is not None:
        requested_at = _requested_at(ride)
        if requested_at is None:
            return False
        if requested_at.tzinfo is not None:
            requested_at = requested_at.astimezone(timezone.utc)
        if requested_at.date() != flt.requested_on:
            return False
    if flt.max_seats is not None and ride.seats_requested > flt.max_seats:
        return False
    if flt.min_fare is not None and (ride.price is None or ride.price < flt.min_fare):
        return False
    return True


def _sort_key(flt: RideFilter):
    if flt.sort_by is RideSort.FARE:
        return lambda ride: ride.price or 0.0
    if flt.sort_by is RideSort.PICKUP_DISTANCE and flt.near is not None:
        return lambda ride: haversine_km(flt.near, ride.pickup)
    return lambda ride: _requested_at(ride).timestamp() if _requested_at(ride) else 0.0


def search_rides(rides: Iterable[Ride], flt: RideFilter) -> list[Ride]:
    """Rides matching *flt*, ordered by ``flt.sort_by``."""
    found = [ride for ride in rides if matches(ride, flt)]
    found.sort(key=_sort_key(flt), reverse=flt.descending)
    return found
