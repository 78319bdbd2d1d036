"""
Purpose: Central configuration for route estimation and fares.
What it does:

Stores all tunable constants for the local route heuristic and the fare model:

AVERAGE_SPEED_KMH = 25 (dense urban traffic)
BASE_FARE = 50, PER_KM_RATE = 12, PER_MINUTE_RATE = 2 (BDT)
MIN_DISCOUNT_FACTOR = 0.8, DISCOUNT_PER_EXTRA_PASSENGER = 0.05

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class RoutingPolicy:
    """
    Central configuration for route optimisation and cost estimation.
    """

    # --- Local heuristic ---
    # Average door-to-door speed used when no routing provider answers.
    average_speed_kmh: float = 25.0

    # --- Fare model ---
    base_fare: float = 50.0
    per_km_rate: float = 12.0
    per_minute_rate: float = 2.0

    # Shared rides get cheaper per extra passenger, down to this floor.
    discount_per_extra_passenger: float = 0.05
    min_discount_factor: float = 0.8

    # --- External providers ---
    # Seconds to wait for a routing provider before falling through the chain.
    provider_timeout_sec: float = 5.0

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be > 0")

        if self.base_fare < 0 or self.per_km_rate < 0 or self.per_minute_rate < 0:
            raise ValueError("fare components must be >= 0")

        if not 0.0 < self.min_discount_factor <= 1.0:
            raise ValueError("min_discount_factor must be in (0, 1]")

        if self.discount_per_extra_passenger < 0:
            raise ValueError("discount_per_extra_passenger must be >= 0")

        if self.provider_timeout_sec <= 0:
            raise ValueError("provider_timeout_sec must be > 0")


def default_routing_policy() -> RoutingPolicy:
    """
    Convenience factory for the default policy.
    Provider timeout can be overridden with ROUTE_PROVIDER_TIMEOUT in the environment.
    """
    timeout = os.getenv("ROUTE_PROVIDER_TIMEOUT")
    p = RoutingPolicy(provider_timeout_sec=float(timeout)) if timeout else RoutingPolicy()
    p.validate()
    return p
