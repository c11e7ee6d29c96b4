#Purpose: Walking-route ETA backed by OSRM, with the waypoint estimate as fallback.
#Returns the same EtaEstimate shape as routing/eta_service.py, but with the
#router's own walking figures. Any OSRM failure (timeout, bad payload, no route)
#degrades to the straight-line-through-waypoint estimate.

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from orders.models import Order

from .eta_service import EtaEstimate, EtaEstimator, route_destination, route_origin
from .geo import LatLon
from .osrm_client import OSRMClient, OSRMError

logger = logging.getLogger(__name__)


class RoutedEtaEstimator:
    """
    Replaces the waypoint estimate with OSRM's own walking figures whenever the
    router answers. The waypoint leg and the detour factor are
    not applied, so via_waypoint is None and durations are only as monotonic
    as the router's paths. Only OSRM failures fall back to
    EtaEstimator.
    """

    def __init__(self, osrm_client: OSRMClient, fallback: Optional[EtaEstimator] = None):
        self.osrm_client = osrm_client
        self.fallback = fallback or EtaEstimator()

    async def estimate(self, from_point: LatLon, to_point: LatLon) -> EtaEstimate:
        try:
            route = await asyncio.to_thread(self.osrm_client.compute_route, [from_point, to_point])
        except OSRMError as error:
            logger.warning(f"Walking route unavailable, using waypoint estimate: {error}")
            return self.fallback.estimate(from_point, to_point)

        return EtaEstimate(
            distance_meters=route["distance"],
            duration_seconds=route["duration"],
            via_waypoint=None,
            from_point=from_point,
        )

    async def estimate_for_order(self, order: Order) -> Optional[EtaEstimate]:
        if order.status.is_terminal:
            return None
        return await self.estimate(route_origin(order), route_destination(order))
