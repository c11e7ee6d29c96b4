"""
Purpose: Campus drop-off zone catalog.
What it does:
Each Zone prices delivery (delivery_fee) and anchors the ETA destination
(lat, lon). Immutable reference data.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class Zone:
    code: str
    name: str
    walk_time_minutes: int
    delivery_fee: Decimal
    lat: float
    lon: float

    @property
    def anchor(self) -> LatLon:
        return (self.lat, self.lon)


CAMPUS_ZONES: List[Zone] = [
    Zone("UC", "United College", 4, Decimal("3.00"), 22.418976, 114.206543),
    Zone("MED", "Medical Building", 5, Decimal("3.00"), 22.419520, 114.205450),
    Zone("SHAW", "Shaw College", 7, Decimal("4.00"), 22.419234, 114.207789),
    Zone("NA", "New Asia College", 10, Decimal("5.00"), 22.421197, 114.209186),
    Zone("CC", "Chung Chi College", 12, Decimal("6.00"), 22.414567, 114.208901),
]

_ZONES_BY_CODE: Dict[str, Zone] = {zone.code: zone for zone in CAMPUS_ZONES}


def get_zone(code: str) -> Optional[Zone]:
    return _ZONES_BY_CODE.get(code)


def list_zones() -> List[Zone]:
    """Zones ordered by walk time, nearest first."""
    return sorted(CAMPUS_ZONES, key=lambda zone: zone.walk_time_minutes)
