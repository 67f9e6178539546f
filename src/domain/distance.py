"""
Distance calculation and the store geofence.

Uses the Haversine great-circle formula; at the geofence scale (tens of
metres) the error against a geodesic is negligible.

Complexity: O(1) per call.
"""

import math

from .entities import Location

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **metres** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def distance_to(point: Location, center: Location) -> float:
    return haversine_m(
        point.latitude, point.longitude, center.latitude, center.longitude
    )


def within_geofence(point: Location, center: Location, radius_m: float) -> bool:
    """True when *point* lies inside the circle (boundary inclusive)."""
    return distance_to(point, center) <= radius_m
