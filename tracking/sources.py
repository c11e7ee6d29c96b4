"""
Purpose: Where partner positions come from.
What it does:
- LocationSource: the one call a tracking session makes per tick
- DeviceLocationSource: buffers the latest fix pushed by a real device
- SimulatedRouteSource: plays a fixed campus route back, one waypoint per tick,
  for environments without real positioning

Both produce plain LocationReports and go through exactly the same ingest
path. Each simulated source owns its own cursor; nothing is shared between
sessions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Callable, List, Optional, Protocol, Sequence

from orders.models import LocationReport, Order, OrderStatus, utc_now

Clock = Callable[[], datetime]


class LocationSource(Protocol):
    async def next_report(self) -> Optional[LocationReport]:
        """The next fix to ingest, or None when there is nothing new this tick."""
        ...


class RoutePhase(str, Enum):
    HEADING_TO_PICKUP = "heading_to_pickup"
    AT_PICKUP = "at_pickup"
    HEADING_TO_CUSTOMER = "heading_to_customer"
    AT_CUSTOMER = "at_customer"


@dataclass(frozen=True)
class RouteWaypoint:
    lat: float
    lng: float
    name: str
    phase: RoutePhase


# Medical Building -> Cafe (pickup) -> New Asia College. 15 steps, 2 s each.
CAMPUS_DEMO_ROUTE: List[RouteWaypoint] = [
    RouteWaypoint(22.41952, 114.20545, "Medical Building", RoutePhase.HEADING_TO_PICKUP),
    RouteWaypoint(22.41920, 114.20520, "Medical Building path", RoutePhase.HEADING_TO_PICKUP),
    RouteWaypoint(22.41890, 114.20500, "Science Centre steps", RoutePhase.HEADING_TO_PICKUP),
    RouteWaypoint(22.41865, 114.20483, "Cafe approach", RoutePhase.HEADING_TO_PICKUP),
    RouteWaypoint(22.418461, 114.204712, "Cafe", RoutePhase.AT_PICKUP),
    RouteWaypoint(22.418461, 114.204712, "Cafe (picked up)", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.41900, 114.20600, "University Mall", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.41940, 114.20700, "Sir Run Run Shaw Hall", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.41980, 114.20760, "Shaw path", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.42020, 114.20820, "Residence road", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.42050, 114.20860, "Upper campus stairs", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.42080, 114.20890, "New Asia road", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.42100, 114.20905, "New Asia gate", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.42115, 114.20915, "New Asia entrance", RoutePhase.HEADING_TO_CUSTOMER),
    RouteWaypoint(22.421197, 114.209186, "New Asia College", RoutePhase.AT_CUSTOMER),
]


def pickup_resume_index(route: Sequence[RouteWaypoint]) -> int:
    """
    Index to resume from once the order is picked up: the first waypoint
    heading to the customer (it sits on the pickup point).
    """
    for index, waypoint in enumerate(route):
        if waypoint.phase == RoutePhase.HEADING_TO_CUSTOMER:
            return index
    return 0


class SimulatedRouteSource:
    """
    Plays route back one waypoint per call. Holds at the last waypoint once
    the route is done instead of starting over.
    """

    def __init__(
        self,
        route: Optional[Sequence[RouteWaypoint]] = None,
        start_index: int = 0,
        clock: Optional[Clock] = None,
    ):
        self.route = list(route) if route is not None else list(CAMPUS_DEMO_ROUTE)
        if not self.route:
            raise ValueError("route must have at least one waypoint")
        if not 0 <= start_index < len(self.route):
            raise ValueError(f"start_index {start_index} outside route of {len(self.route)} waypoints")
        self.cursor = start_index
        self.clock = clock or utc_now
        self.last_waypoint: Optional[RouteWaypoint] = None
        self.last_index: Optional[int] = None

    @classmethod
    def for_order(
        cls,
        order: Order,
        route: Optional[Sequence[RouteWaypoint]] = None,
        clock: Optional[Clock] = None,
    ) -> SimulatedRouteSource:
        """
        Start where the order's status says the partner should be, so a
        reload does not send a picked-up order back to the start.
        """
        route = list(route) if route is not None else list(CAMPUS_DEMO_ROUTE)
        start_index = pickup_resume_index(route) if order.status == OrderStatus.PICKED_UP else 0
        return cls(route=route, start_index=start_index, clock=clock)

    @property
    def finished(self) -> bool:
        return self.last_index == len(self.route) - 1

    @property
    def current_phase(self) -> Optional[RoutePhase]:
        return self.last_waypoint.phase if self.last_waypoint else None

    async def next_report(self) -> Optional[LocationReport]:
        waypoint = self.route[self.cursor]
        self.last_waypoint = waypoint
        self.last_index = self.cursor
        if self.cursor < len(self.route) - 1:
            self.cursor += 1
        return LocationReport(lat=waypoint.lat, lng=waypoint.lng, observed_at=self.clock())


class DeviceLocationSource:
    """
    Adapter for a real positioning stream. The device pushes fixes whenever
    its position changes; each tick hands over the newest one (older buffered
    fixes are superseded, not queued).
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now
        self._latest: Optional[LocationReport] = None

    def push(self, lat: float, lng: float, observed_at: Optional[datetime] = None) -> None:
        self._latest = LocationReport(lat=lat, lng=lng, observed_at=observed_at or self.clock())

    async def feed(self, stream: AsyncIterator[LocationReport]) -> None:
        async for fix in stream:
            self._latest = fix

    async def next_report(self) -> Optional[LocationReport]:
        fix, self._latest = self._latest, None
        return fix
