"""
The full state of one order as observers see it. Always a complete snapshot,
never a delta: receivers overwrite whatever they had.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from orders.models import Order
from routing.eta_service import EtaEstimate


@dataclass(frozen=True)
class OrderSnapshot:
    order: Order
    eta: Optional[EtaEstimate] = None
    location_age_seconds: Optional[float] = None

    @property
    def order_id(self) -> str:
        return self.order.id

    @property
    def version(self) -> int:
        return self.order.version

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "eta": None if self.eta is None else {
                "distance_meters": round(self.eta.distance_meters, 1),
                "duration_seconds": round(self.eta.duration_seconds, 1),
                "via_waypoint": self.eta.via_waypoint,
            },
            "location_age_seconds": self.location_age_seconds,
        }
