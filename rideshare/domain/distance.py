"""
Straight-line trip distance between pickup and dropoff.

Great-circle (Haversine) distance is what the ride card shows as the
trip length; road routing is left to the maps client in the frontend.
"""

import math

from .entities import Location

EARTH_RADIUS_KM = 6_371.0


def haversine_km(origin: Location, destination: Location) -> float:
    """Return the great-circle distance in **km** between two locations."""
    lat1, lat2 = math.radians(origin.latitude), math.radians(destination.latitude)
    dlat = lat2 - lat1
    dlng = math.radians(destination.longitude - origin.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def trip_distance_km(pickup: Location, dropoff: Location) -> float:
    """Distance stored on a new ride, rounded to metres."""
    return round(haversine_km(pickup, dropoff), 3)
