"""Unit tests for the haversine distance and the store geofence."""

import pytest

from src.domain.distance import haversine_m, within_geofence
from src.domain.entities import Location

STORE = Location(-33.564309, -70.680308)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_m(-33.5, -70.6, -33.5, -70.6) == 0.0

    def test_known_distance(self):
        # Store -> Plaza de Armas, Santiago ~13.5 km
        d = haversine_m(STORE.latitude, STORE.longitude, -33.4378, -70.6505)
        assert 13_000 < d < 15_000

    def test_symmetric(self):
        d1 = haversine_m(-33.0, -70.0, -34.0, -71.0)
        d2 = haversine_m(-34.0, -71.0, -33.0, -70.0)
        assert abs(d1 - d2) < 1e-6

    def test_one_degree_of_latitude(self):
        assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)


class TestGeofence:
    def test_center_is_inside(self):
        assert within_geofence(STORE, STORE, 50)

    def test_thirty_metres_inside(self):
        # ~0.00027 deg of latitude is about 30 m
        point = Location(STORE.latitude + 0.00027, STORE.longitude)
        assert within_geofence(point, STORE, 50)

    def test_hundred_metres_outside(self):
        point = Location(STORE.latitude + 0.0009, STORE.longitude)
        assert not within_geofence(point, STORE, 50)

    def test_boundary_is_inside(self):
        point = Location(STORE.latitude + 0.0004, STORE.longitude)
        radius = haversine_m(
            point.latitude, point.longitude, STORE.latitude, STORE.longitude
        )
        assert within_geofence(point, STORE, radius)
