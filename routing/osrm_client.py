#Purpose: Walking-route lookups against an OSRM server (foot profile).
#Only the /route endpoint is used: one partner position to one drop-off anchor.
#Hides the OSRM quirks (lon,lat ordering, "code" field, routes list) and
#turns every transport or payload problem into OSRMError.
#No fallback here; routing/route_service.py decides what to do on failure.


from dotenv import load_dotenv
import os
from typing import Dict, List, Optional, Tuple
import requests

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=https://router.project-osrm.org
load_dotenv()
BASE_URL = os.getenv("OSRM_BASE_URL")

# (lat, lon) everywhere inside the engine
LatLon = Tuple[float, float]


class OSRMError(Exception):
    """OSRM unreachable, or answered without a usable route."""
    pass


class OSRMClient:
    """
    Thin HTTP client for OSRM /route.

    Blocking (requests). Async callers offload it with asyncio.to_thread.
    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "foot", timeout: float = 5):
        self.base_url = (base_url or BASE_URL or "").rstrip("/")
        self.timeout = timeout #the time to wait for a response from OSRM before giving up
        self.profile = profile #the mode of transportation (foot on campus)

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set OSRM_BASE_URL in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lat, lon in coords])

    #----------------
    # route service
    #----------------
    def compute_route(self, coordinates: List[LatLon]) -> Dict[str, float]:
        """
        calls the OSRM /route endpoint with the given coordinates and
        returns a dict with distance and duration

        Returns:
            {
                "distance": float, # in meters
                "duration": float, # in seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"

        try:
            response = requests.get(
                url,
                params={
                    "overview": "false", # we don't need the geometry of the route
                },
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as error:
            raise OSRMError(f"OSRM request failed: {error}") from error

        #validating OSRM response
        if data.get("code") != "Ok" or not data.get("routes"):
            raise OSRMError(f"OSRM error: {data.get('message', 'Unknown error')}")

        route = data["routes"][0] #take the first route (OSRM may return multiple routes)

        #Normalize output to internal format
        return {
            "distance": float(route["distance"]),
            "duration": float(route["duration"]),
        }
