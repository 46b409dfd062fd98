"""Trip distance shown on the ride card."""

from rideshare.domain.distance import haversine_km, trip_distance_km
from rideshare.domain.entities import Location

MG_ROAD = Location(12.9716, 77.5946)
KORAMANGALA = Location(12.9352, 77.6245)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(MG_ROAD, MG_ROAD) == 0.0

    def test_known_distance(self):
        # MG Road -> Koramangala ~5.2 km in a straight line
        d = haversine_km(MG_ROAD, KORAMANGALA)
        assert 4.5 < d < 6.0

    def test_symmetric(self):
        d1 = haversine_km(MG_ROAD, KORAMANGALA)
        d2 = haversine_km(KORAMANGALA, MG_ROAD)
        assert abs(d1 - d2) < 1e-9

    def test_one_degree_of_latitude(self):
        d = haversine_km(Location(0.0, 0.0), Location(1.0, 0.0))
        assert abs(d - 111.19) < 0.1


def test_trip_distance_is_rounded_to_metres():
    d = trip_distance_km(MG_ROAD, KORAMANGALA)
    assert d == round(d, 3)
    assert abs(d - haversine_km(MG_ROAD, KORAMANGALA)) < 0.001
