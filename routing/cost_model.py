"""
Purpose: Geometry and cost model shared by matching and routing.
Pure functions only: great-circle distance, travel time at an average speed,
and the shared-ride fare formula.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from .policy import RoutingPolicy

LatLon = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0

_DEFAULT_POLICY = RoutingPolicy()


def haversine_km(a: LatLon, b: LatLon) -> float:
    """Great-circle distance in kilometres between two (lat, lon) points."""
    lat1, lon1 = a
    lat2, lon2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def estimate_duration_minutes(distance_km: float, average_speed_kmh: Optional[float] = None) -> float:
    speed = average_speed_kmh or _DEFAULT_POLICY.average_speed_kmh
    return distance_km / speed * 60.0


def passenger_discount(passengers: int, policy: Optional[RoutingPolicy] = None) -> float:
    """
    1.0 for a solo trip, 5% off per extra passenger, never below the policy floor.
    """
    policy = policy or _DEFAULT_POLICY
    extra = max(0, passengers - 1)
    return max(policy.min_discount_factor, 1.0 - policy.discount_per_extra_passenger * extra)


def estimate_fare(
    distance_km: float,
    duration_minutes: float,
    passengers: int,
    policy: Optional[RoutingPolicy] = None,
) -> int:
    """
    Total trip cost: base + per-km + per-minute, discounted for shared rides.
    Rounded to a whole currency unit.
    """
    policy = policy or _DEFAULT_POLICY
    raw = policy.base_fare + policy.per_km_rate * distance_km + policy.per_minute_rate * duration_minutes
    return int(round(raw * passenger_discount(passengers, policy)))


def cost_per_person(total_cost: float, passengers: int) -> int:
    if passengers <= 0:
        raise ValueError("passengers must be >= 1")
    return int(round(total_cost / passengers))
