"""Geospatial helper functions."""

from __future__ import annotations

import math

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute great-circle distance in meters using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def estimate_travel_seconds(distance_m: float, speed_kmh: float) -> float:
    """Straight-line travel time at a constant speed. Not traffic aware."""
    if speed_kmh <= 0:
        raise ValueError("Speed must be positive.")
    return distance_m / (speed_kmh * 1000.0 / 3600.0)
