"""
Great-circle distance for check-in geofencing.
"""

import math

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Compute Haversine distance in meters between two lat/lng points.

    NaN inputs propagate to a NaN result.

    Args:
        lat1: Latitude 1 in degrees
        lng1: Longitude 1 in degrees
        lat2: Latitude 2 in degrees
        lng2: Longitude 2 in degrees

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def is_within_radius(distance_m: float, radius_m: float) -> bool:
    """Inclusive geofence test; a non-finite distance is never inside."""
    return math.isfinite(distance_m) and distance_m <= radius_m
