"""
Purpose: One capability abstraction over every way we can order pickups.
What it does:

- RouteProvider: route(origin, destination, waypoints) -> ProviderRoute, raising ProviderError
- GoogleDirectionsProvider / OSRMTripProvider: HTTP-backed providers (may be unconfigured)
- NearestNeighborProvider: zero-dependency local heuristic (always available)

The optimizer walks an ordered list of providers; adding or reordering providers
never touches the optimizer or the matching engine.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .cost_model import estimate_duration_minutes, haversine_km
from .errors import ProviderError
from .google_client import GoogleDirectionsClient
from .osrm_client import OSRMClient
from .policy import RoutingPolicy, default_routing_policy

LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Waypoint:
    """
    A rider pickup the driver must visit before the destination.
    """
    key: str  # opt-in id
    user_id: str
    coordinates: LatLon
    location_id: Optional[str] = None


@dataclass(frozen=True)
class Leg:
    distance_m: float
    duration_s: float


@dataclass(frozen=True)
class ProviderRoute:
    """
    Raw provider answer.

    legs: origin → first pickup → ... → last pickup → destination (len(waypoints) + 1 legs)
    waypoint_order: indices into the requested waypoints, in visiting order
    """
    legs: List[Leg]
    waypoint_order: List[int]


class RouteProvider(ABC):
    name: str = "provider"

    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def route(self, origin: LatLon, destination: LatLon, waypoints: Sequence[Waypoint]) -> ProviderRoute:
        """Raise ProviderError when no route can be produced."""


class GoogleDirectionsProvider(RouteProvider):
    name = "google"

    def __init__(self, client: Optional[GoogleDirectionsClient] = None, timeout: Optional[float] = None):
        timeout = timeout or default_routing_policy().provider_timeout_sec
        self.client = client or GoogleDirectionsClient(timeout=timeout)

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def route(self, origin: LatLon, destination: LatLon, waypoints: Sequence[Waypoint]) -> ProviderRoute:
        result = self.client.optimize_route(origin, destination, [wp.coordinates for wp in waypoints])
        return ProviderRoute(
            legs=[Leg(leg["distance"], leg["duration"]) for leg in result["legs"]],
            waypoint_order=list(result["waypoint_order"]),
        )


class OSRMTripProvider(RouteProvider):
    name = "osrm"

    def __init__(self, client: Optional[OSRMClient] = None, timeout: Optional[float] = None):
        timeout = timeout or default_routing_policy().provider_timeout_sec
        self.client = client or OSRMClient(timeout=timeout)

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def route(self, origin: LatLon, destination: LatLon, waypoints: Sequence[Waypoint]) -> ProviderRoute:
        if not waypoints:
            # Nothing to reorder: a plain /route call is enough.
            result = self.client.compute_route([origin, destination])
            return ProviderRoute(legs=[Leg(result["distance"], result["duration"])], waypoint_order=[])

        coordinates = [origin] + [wp.coordinates for wp in waypoints] + [destination]
        result = self.client.compute_trip(coordinates)

        # Trip order is over all inputs; strip the fixed source/destination and
        # shift back to waypoint indices.
        last = len(coordinates) - 1
        waypoint_order = [idx - 1 for idx in result["order"] if 0 < idx < last]
        return ProviderRoute(
            legs=[Leg(leg["distance"], leg["duration"]) for leg in result["legs"]],
            waypoint_order=waypoint_order,
        )


class NearestNeighborProvider(RouteProvider):
    """
    Local heuristic: from the driver's pickup, repeatedly visit the nearest
    unvisited pickup (haversine), then drive to the destination.
    Durations assume the policy's average urban speed.
    """
    name = "local"

    def __init__(self, policy: Optional[RoutingPolicy] = None):
        self.policy = policy or default_routing_policy()

    def route(self, origin: LatLon, destination: LatLon, waypoints: Sequence[Waypoint]) -> ProviderRoute:
        order = nearest_neighbor_order(origin, [wp.coordinates for wp in waypoints])

        stops = [origin] + [waypoints[i].coordinates for i in order] + [destination]
        legs: List[Leg] = []
        for a, b in zip(stops[:-1], stops[1:]):
            distance_km = haversine_km(a, b)
            minutes = estimate_duration_minutes(distance_km, self.policy.average_speed_kmh)
            legs.append(Leg(distance_m=distance_km * 1000.0, duration_s=minutes * 60.0))

        return ProviderRoute(legs=legs, waypoint_order=order)


def nearest_neighbor_order(start: LatLon, points: Sequence[LatLon]) -> List[int]:
    """
    Greedy visiting order over `points` starting at `start`.
    Ties go to the lower index so the order is deterministic.
    """
    remaining = list(range(len(points)))
    order: List[int] = []
    current = start
    while remaining:
        nearest = min(remaining, key=lambda idx: (haversine_km(current, points[idx]), idx))
        order.append(nearest)
        remaining.remove(nearest)
        current = points[nearest]
    return order


def default_provider_chain(policy: Optional[RoutingPolicy] = None) -> List[RouteProvider]:
    """
    Primary → secondary external providers. The local heuristic is appended by the optimizer.
    """
    policy = policy or default_routing_policy()
    return [
        GoogleDirectionsProvider(timeout=policy.provider_timeout_sec),
        OSRMTripProvider(timeout=policy.provider_timeout_sec),
    ]


__all__ = [
    "GoogleDirectionsProvider",
    "Leg",
    "NearestNeighborProvider",
    "OSRMTripProvider",
    "ProviderError",
    "ProviderRoute",
    "RouteProvider",
    "Waypoint",
    "default_provider_chain",
    "nearest_neighbor_order",
]
