#Purpose: The OSRM "adapter/client".
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route, /trip)
#timeouts and error handling
#parsing response JSON into our internal shape
#It should not contain matching rules or scoring.


from dotenv import load_dotenv
import logging
import os
from typing import List, Tuple, Dict, Any, Optional
import requests

from .errors import ProviderError

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=http://router.project-osrm.org
load_dotenv()
OSRM_BASE_URL = os.getenv("OSRM_BASE_URL")

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


class OSRMError(ProviderError):
    """Custom exception for OSRM client errors."""

    def __init__(self, message: str):
        super().__init__(message, provider="osrm")


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal (lat, lon) → OSRM (lon,lat)
    - Return normalized outputs

    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: float = 5):
        self.base_url = (base_url or OSRM_BASE_URL or "").rstrip("/")
        self.timeout = timeout #seconds to wait for OSRM before giving up
        self.profile = profile #the mode of transportation (driving, walking, cycling)

    def is_configured(self) -> bool:
        return bool(self.base_url)

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lat, lon in coords])

    def _get(self, service: str, coordinates: List[LatLon], params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured():
            raise OSRMError("OSRM base URL not set. Please set OSRM_BASE_URL in the .env file.")

        url = f"{self.base_url}/{service}/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            data = response.json()
        except requests.RequestException as exc:
            raise OSRMError(f"OSRM request failed: {exc}") from exc
        except ValueError as exc:
            raise OSRMError(f"OSRM returned a non-JSON response (HTTP {response.status_code})") from exc

        if not isinstance(data, dict):
            raise OSRMError(f"OSRM returned an unexpected payload: {type(data).__name__}")

        #validating OSRM response
        if data.get("code") != "Ok":
            raise OSRMError(f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")
        return data

    #----------------
    # Public methods
    #----------------
    def compute_route(self, coordinates: List[LatLon]) -> Dict[str, float]:
        """
        calls the OSRM /route endpoint with the given coordinates (visited in order)
        and returns a dict with distance and duration

        Returns:
            {
                "distance": float, # in meters
                "duration": float, # in seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        data = self._get("route", coordinates, {"overview": "false"}) # we don't need the geometry

        try:
            route = data["routes"][0] #take the first route (OSRM may return alternatives)
            return {
                "distance": route["distance"],
                "duration": route["duration"],
            }
        except (KeyError, IndexError, TypeError) as exc:
            raise OSRMError(f"Malformed OSRM route response: {exc}") from exc

    def compute_trip(self, coordinates: List[LatLon]) -> Dict[str, Any]:
        """
        calls the OSRM /trip endpoint: first coordinate fixed as source, last as destination,
        intermediate points reordered to minimise travel time.

        Returns:
            {
                "legs": [{"distance": float, "duration": float}, ...], # in visiting order
                "order": [int, ...], # input indices in visiting order
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a trip.")

        data = self._get(
            "trip",
            coordinates,
            {
                "source": "first",
                "destination": "last",
                "roundtrip": "false",
                "overview": "false",
            },
        )

        try:
            trip = data["trips"][0]
            # waypoints[i].waypoint_index is the position of input i in the trip
            positions = [wp["waypoint_index"] for wp in data["waypoints"]]
            legs = [{"distance": leg["distance"], "duration": leg["duration"]} for leg in trip["legs"]]
        except (KeyError, IndexError, TypeError) as exc:
            raise OSRMError(f"Malformed OSRM trip response: {exc}") from exc

        order = sorted(range(len(positions)), key=lambda input_idx: positions[input_idx])
        logger.debug("OSRM trip over %d points returned %d legs", len(coordinates), len(legs))
        return {"legs": legs, "order": order}
