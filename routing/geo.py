"""
Purpose: Pure geometry helpers for campus-scale distances.
What it does:
- great-circle (haversine) distance between two (lat, lon) points
- linear interpolation between two points
- walking-speed based duration estimate

Rule: No state, no I/O. Everything here is a plain function.
"""

from __future__ import annotations

import math
from typing import Tuple

LatLon = Tuple[float, float]

EARTH_RADIUS_M = 6_371_000.0

# Average adult walking pace on campus paths (metres per second)
DEFAULT_WALKING_SPEED_MPS = 1.4


def haversine_meters(a: LatLon, b: LatLon) -> float:
    """
    Great-circle distance in metres between two (lat, lon) points.
    """
    lat1, lon1 = a
    lat2, lon2 = b

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # clamp against float drift for antipodal / identical points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def interpolate(a: LatLon, b: LatLon, fraction: float) -> LatLon:
    """
    Point on the straight segment a -> b. fraction is clamped to [0, 1].
    Good enough at campus scale where the earth is flat.
    """
    fraction = min(1.0, max(0.0, fraction))
    return (
        a[0] + (b[0] - a[0]) * fraction,
        a[1] + (b[1] - a[1]) * fraction,
    )


def walking_duration_seconds(distance_m: float, speed_mps: float = DEFAULT_WALKING_SPEED_MPS) -> float:
    """
    Seconds needed to walk distance_m at speed_mps.
    """
    if speed_mps <= 0:
        raise ValueError("speed_mps must be > 0")
    if distance_m <= 0:
        return 0.0
    return distance_m / speed_mps


def is_valid_coordinate(lat: float, lon: float) -> bool:
    if lat is None or lon is None:
        return False
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
