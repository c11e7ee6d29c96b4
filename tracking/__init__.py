"""
Live partner tracking: ingest positions, play back simulated routes, and
flag partners who went quiet.
"""
from .ingestor import LocationIngestor, check_reporter
from .sources import (
    CAMPUS_DEMO_ROUTE,
    DeviceLocationSource,
    LocationSource,
    RoutePhase,
    RouteWaypoint,
    SimulatedRouteSource,
)
from .staleness import find_stuck_orders, is_stuck, location_age_seconds
from .session import TrackingSession

__all__ = [
    "LocationIngestor",
    "check_reporter",
    "LocationSource",
    "DeviceLocationSource",
    "SimulatedRouteSource",
    "RoutePhase",
    "RouteWaypoint",
    "CAMPUS_DEMO_ROUTE",
    "TrackingSession",
    "location_age_seconds",
    "is_stuck",
    "find_stuck_orders",
]
