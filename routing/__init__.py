#Marks routing as a package.
#Re-exports the leaf geometry and catalog APIs so other modules import from
#routing without knowing internal file names.
#ETA estimators depend on orders/, import them explicitly:
#from routing.eta_service import EtaEstimator
#from routing.route_service import RoutedEtaEstimator
#No business logic.

from .geo import haversine_meters, interpolate, walking_duration_seconds
from .waypoints import CAMPUS_WAYPOINTS, PICKUP_POINTS, Waypoint, nearest_waypoint
from .osrm_client import OSRMClient, OSRMError

__all__ = [
           "haversine_meters",
           "interpolate",
             "walking_duration_seconds",
             "Waypoint",
             "CAMPUS_WAYPOINTS",
             "PICKUP_POINTS",
             "nearest_waypoint",
             "OSRMClient",
             "OSRMError",
             ]
