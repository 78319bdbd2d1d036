#Marks routing as a package.
#Re-exports the public APIs (RouteOptimizer, providers, cost model, OSRMClient)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .cost_model import cost_per_person, estimate_duration_minutes, estimate_fare, haversine_km
from .errors import ProviderError
from .google_client import GoogleDirectionsClient, GoogleDirectionsError
from .optimizer import RouteOptimizer, RouteResult
from .osrm_client import OSRMClient, OSRMError
from .policy import RoutingPolicy, default_routing_policy
from .providers import (
    GoogleDirectionsProvider,
    NearestNeighborProvider,
    OSRMTripProvider,
    RouteProvider,
    Waypoint,
    default_provider_chain,
)

__all__ = [
    "GoogleDirectionsClient",
    "GoogleDirectionsError",
    "GoogleDirectionsProvider",
    "NearestNeighborProvider",
    "OSRMClient",
    "OSRMError",
    "OSRMTripProvider",
    "ProviderError",
    "RouteOptimizer",
    "RouteProvider",
    "RouteResult",
    "RoutingPolicy",
    "Waypoint",
    "cost_per_person",
    "default_provider_chain",
    "default_routing_policy",
    "estimate_duration_minutes",
    "estimate_fare",
    "haversine_km",
]
