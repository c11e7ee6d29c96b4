#Purpose: ETA estimation policy.
#Converts straight-line geometry into walking ETAs used by:
#customer-facing "arrives in X"
#partner-facing distance to drop-off
#Algorithm: from -> waypoint nearest the destination -> destination,
#inflated by a detour factor, divided by walking speed.
#Never cached: it is cheap and must reflect the latest partner position.

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from orders.errors import UnknownZone
from orders.models import Order, OrderStatus
from orders.zones import get_zone

from .geo import DEFAULT_WALKING_SPEED_MPS, LatLon, haversine_meters, walking_duration_seconds
from .waypoints import CAMPUS_WAYPOINTS, Waypoint, get_pickup_point, nearest_waypoint

DEFAULT_DETOUR_FACTOR = 1.20


@dataclass(frozen=True)
class EtaEstimate:
    distance_meters: float
    duration_seconds: float
    # which waypoint the path was bent through, for diagnostics
    via_waypoint: Optional[str] = None
    from_point: Optional[LatLon] = None


class EtaEstimator:
    """
    Straight-line-through-waypoint walking ETA.
    """

    def __init__(
        self,
        walking_speed_mps: float = DEFAULT_WALKING_SPEED_MPS,
        detour_factor: float = DEFAULT_DETOUR_FACTOR,
        waypoints: Optional[Sequence[Waypoint]] = None,
    ):
        if walking_speed_mps <= 0:
            raise ValueError("walking_speed_mps must be > 0")
        if detour_factor < 1.0:
            raise ValueError("detour_factor must be >= 1.0")

        self.walking_speed_mps = walking_speed_mps
        self.detour_factor = detour_factor
        self.waypoints: List[Waypoint] = list(waypoints) if waypoints is not None else list(CAMPUS_WAYPOINTS)

    def estimate(self, from_point: LatLon, to_point: LatLon) -> EtaEstimate:
        via = nearest_waypoint(to_point, self.waypoints)

        first_leg = haversine_meters(from_point, via.coordinates)
        last_leg = haversine_meters(via.coordinates, to_point)
        distance = (first_leg + last_leg) * self.detour_factor

        return EtaEstimate(
            distance_meters=distance,
            duration_seconds=walking_duration_seconds(distance, self.walking_speed_mps),
            via_waypoint=via.code,
            from_point=from_point,
        )

    def estimate_for_order(self, order: Order) -> Optional[EtaEstimate]:
        """
        ETA from wherever the order currently is to its drop-off zone.
        pending: from the pickup point
        accepted / picked_up: from the last partner position, else the pickup point
        delivered / cancelled: None, nothing left to estimate
        """
        if order.status.is_terminal:
            return None

        from_point = route_origin(order)
        return self.estimate(from_point, route_destination(order))


def route_origin(order: Order) -> LatLon:
    pickup = get_pickup_point(order.pickup_point)
    if pickup is None:
        raise UnknownZone(f"Order {order.id} references unknown pickup point {order.pickup_point!r}", order_id=order.id)

    if order.status != OrderStatus.PENDING and order.partner_location is not None:
        return order.partner_location
    return pickup.coordinates


def route_destination(order: Order) -> LatLon:
    zone = get_zone(order.dropoff_zone)
    if zone is None:
        raise UnknownZone(f"Order {order.id} references unknown zone {order.dropoff_zone!r}", order_id=order.id)
    return zone.anchor
