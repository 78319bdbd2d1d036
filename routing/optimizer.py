"""
Purpose: Turn a (driver pickup, rider pickups, destination) triple into a priced route.
What it does:

- Walks the provider chain in order (external APIs first, local heuristic last)
- Skips unconfigured providers, falls through on any provider failure
- Validates the provider answer (leg count, waypoint permutation)
- Computes totals, fare, cost per person and per-participant pickup ETAs

Rule: a match is never lost because routing providers are down; the local
heuristic always answers. If even it fails we raise, because that is a bug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from .cost_model import cost_per_person, estimate_fare
from .errors import ProviderError
from .policy import RoutingPolicy, default_routing_policy
from .providers import NearestNeighborProvider, ProviderRoute, RouteProvider, Waypoint

LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteResult:
    """
    Priced pickup route for one match candidate.
    """
    ordered_waypoints: List[Waypoint]
    total_distance_m: float
    total_duration_s: float
    total_cost: int
    cost_per_person: int

    # user_id -> pickup time; the driver departs at the evaluation time
    participant_etas: Dict[str, datetime]
    arrival_eta: datetime

    provider: str
    provider_errors: List[str] = field(default_factory=list)

    @property
    def total_distance_km(self) -> float:
        return self.total_distance_m / 1000.0

    @property
    def total_duration_min(self) -> float:
        return self.total_duration_s / 60.0

    @property
    def passengers(self) -> int:
        return len(self.ordered_waypoints) + 1


class RouteOptimizer:
    """
    Ordered provider chain with a guaranteed local fallback.
    """

    def __init__(
        self,
        providers: Optional[Sequence[RouteProvider]] = None,
        policy: Optional[RoutingPolicy] = None,
        fallback: Optional[RouteProvider] = None,
    ):
        self.policy = policy or default_routing_policy()
        self.providers: List[RouteProvider] = list(providers or [])
        self.fallback = fallback or NearestNeighborProvider(self.policy)

    def optimize(
        self,
        start: LatLon,
        destination: LatLon,
        waypoints: Sequence[Waypoint],
        *,
        driver_user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RouteResult:
        now = now or datetime.now(timezone.utc)
        errors: List[str] = []

        for provider in self.providers + [self.fallback]:
            if not provider.is_configured():
                logger.debug("Routing provider %s not configured, skipping", provider.name)
                continue
            try:
                raw = provider.route(start, destination, waypoints)
                _check_provider_route(raw, len(waypoints), provider.name)
            except Exception as exc:
                # Any provider failure (timeouts, quota, bad payloads) falls through the chain.
                if provider is self.fallback:
                    raise
                logger.warning("Routing provider %s failed: %s", provider.name, exc)
                errors.append(f"{provider.name}: {exc}")
                continue

            return self._build_result(raw, waypoints, provider.name, errors, driver_user_id, now)

        # Only reachable if the fallback reports itself unconfigured.
        raise ProviderError("No routing provider produced a route", provider="chain")

    def _build_result(
        self,
        raw: ProviderRoute,
        waypoints: Sequence[Waypoint],
        provider_name: str,
        errors: List[str],
        driver_user_id: Optional[str],
        now: datetime,
    ) -> RouteResult:
        ordered = [waypoints[i] for i in raw.waypoint_order]

        etas: Dict[str, datetime] = {}
        if driver_user_id is not None:
            etas[driver_user_id] = now

        elapsed_s = 0.0
        for waypoint, leg in zip(ordered, raw.legs):
            elapsed_s += leg.duration_s
            etas[waypoint.user_id] = now + timedelta(seconds=elapsed_s)

        total_distance_m = sum(leg.distance_m for leg in raw.legs)
        total_duration_s = sum(leg.duration_s for leg in raw.legs)
        passengers = len(waypoints) + 1

        total_cost = estimate_fare(total_distance_m / 1000.0, total_duration_s / 60.0, passengers, self.policy)

        return RouteResult(
            ordered_waypoints=ordered,
            total_distance_m=total_distance_m,
            total_duration_s=total_duration_s,
            total_cost=total_cost,
            cost_per_person=cost_per_person(total_cost, passengers),
            participant_etas=etas,
            arrival_eta=now + timedelta(seconds=total_duration_s),
            provider=provider_name,
            provider_errors=list(errors),
        )


def _check_provider_route(raw: ProviderRoute, waypoint_count: int, provider_name: str) -> None:
    if len(raw.legs) != waypoint_count + 1:
        raise ProviderError(
            f"expected {waypoint_count + 1} legs, got {len(raw.legs)}", provider=provider_name
        )
    if sorted(raw.waypoint_order) != list(range(waypoint_count)):
        raise ProviderError(f"invalid waypoint order {raw.waypoint_order}", provider=provider_name)
