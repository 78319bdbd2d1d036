#Purpose: Google Directions "adapter/client".
#Sole responsibility: call the Directions API with waypoint optimisation and
#return legs + waypoint order in the same normalized shape as OSRMClient.compute_trip.
#It should not contain matching rules or scoring.

from dotenv import load_dotenv
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import requests

from .errors import ProviderError

# Example in .env:
# GOOGLE_MAPS_API_KEY=...
load_dotenv()
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")
DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


class GoogleDirectionsError(ProviderError):
    """Custom exception for Google Directions client errors."""

    def __init__(self, message: str):
        super().__init__(message, provider="google")


class GoogleDirectionsClient:
    """
    Google Directions Adapter / Client

    - Internal (lat, lon) → Google "lat,lng" strings
    - optimize:true lets Google reorder the intermediate waypoints
    - Normalizes legs to meters / seconds
    """

    def __init__(self, api_key: Optional[str] = None, timeout: float = 5, base_url: str = DIRECTIONS_URL):
        self.api_key = api_key or GOOGLE_MAPS_API_KEY
        self.timeout = timeout
        self.base_url = base_url

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @staticmethod
    def format_point(point: LatLon) -> str:
        lat, lon = point
        return f"{lat},{lon}"

    def optimize_route(self, origin: LatLon, destination: LatLon, waypoints: List[LatLon]) -> Dict[str, Any]:
        """
        Returns:
            {
                "legs": [{"distance": float, "duration": float}, ...], # meters / seconds, visiting order
                "waypoint_order": [int, ...], # indices into `waypoints` in visiting order
            }
        """
        if not self.is_configured():
            raise GoogleDirectionsError("Google Maps API key not set. Please set GOOGLE_MAPS_API_KEY in the .env file.")

        params = {
            "origin": self.format_point(origin),
            "destination": self.format_point(destination),
            "mode": "driving",
            "key": self.api_key,
        }
        if waypoints:
            params["waypoints"] = "optimize:true|" + "|".join(self.format_point(p) for p in waypoints)

        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise GoogleDirectionsError(f"Google Directions request failed: {exc}") from exc
        except ValueError as exc:
            raise GoogleDirectionsError("Google Directions returned a non-JSON response") from exc

        if not isinstance(data, dict):
            raise GoogleDirectionsError(f"Google Directions returned an unexpected payload: {type(data).__name__}")

        status = data.get("status")
        if status != "OK":
            raise GoogleDirectionsError(f"Google Directions error: {status} {data.get('error_message', '')}".strip())

        try:
            route = data["routes"][0]
            legs = [
                {"distance": float(leg["distance"]["value"]), "duration": float(leg["duration"]["value"])}
                for leg in route["legs"]
            ]
        except (KeyError, IndexError, TypeError) as exc:
            raise GoogleDirectionsError(f"Malformed Google Directions response: {exc}") from exc

        waypoint_order = list(route.get("waypoint_order") or range(len(waypoints)))
        logger.debug("Google Directions returned %d legs, order=%s", len(legs), waypoint_order)
        return {"legs": legs, "waypoint_order": waypoint_order}
