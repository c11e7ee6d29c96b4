"""
Purpose: Fixed catalog of named campus waypoints.
What it does:
- Holds the small set of points the ETA estimator routes through so a
  straight-line estimate bends along real campus paths.
- Holds the pickup points orders are collected from.

Rule: Reference data only. No distance maths here (see routing/geo.py).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .geo import LatLon, haversine_meters


@dataclass(frozen=True)
class Waypoint:
    code: str
    name: str
    lat: float
    lon: float

    @property
    def coordinates(self) -> LatLon:
        return (self.lat, self.lon)


# Pickup points. Orders reference these by code.
STUDENT_CAFE = Waypoint("STUDENT_CAFE", "CUHK Cafe", 22.418461, 114.204712)

PICKUP_POINTS: Dict[str, Waypoint] = {
    STUDENT_CAFE.code: STUDENT_CAFE,
}

# Path waypoints. The zone anchors are included on purpose so a trip that ends
# at a zone anchor has a zero-length final leg.
CAMPUS_WAYPOINTS: List[Waypoint] = [
    STUDENT_CAFE,
    Waypoint("NA", "New Asia College", 22.421197, 114.209186),
    Waypoint("SHAW", "Shaw College", 22.419234, 114.207789),
    Waypoint("UC", "United College", 22.418976, 114.206543),
    Waypoint("CC", "Chung Chi College", 22.414567, 114.208901),
    Waypoint("MED", "Medical Building", 22.419520, 114.205450),
    Waypoint("SRRS", "Sir Run Run Shaw Hall", 22.419650, 114.206700),
]


def get_pickup_point(code: str) -> Optional[Waypoint]:
    return PICKUP_POINTS.get(code)


def nearest_waypoint(point: LatLon, waypoints: Optional[Iterable[Waypoint]] = None) -> Waypoint:
    """
    Closest waypoint to point by straight-line distance.
    Ties resolve to the earlier catalog entry.
    """
    candidates = list(waypoints) if waypoints is not None else CAMPUS_WAYPOINTS
    if not candidates:
        raise ValueError("waypoint catalog is empty")

    return min(candidates, key=lambda waypoint: haversine_meters(point, waypoint.coordinates))
