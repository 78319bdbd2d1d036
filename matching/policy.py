"""
Purpose: Central configuration for matching behavior (single source of truth).
What it does:

Stores all tunable thresholds/caps:

MIN_OVERLAP_MINUTES = 15
MAX_CANDIDATE_DISTANCE_KM = 15
MAX_CLUSTER_DISTANCE_KM = 5
MIN_CONFIDENCE = 40 (accept)
AUTO_CREATE_CONFIDENCE = 70 (batch persists strictly above this)
MAX_MATCHES = 3

Rule: No logic here, just parameters so you can tune without rewriting code.
The confidence formula's own bonuses live in scoring.py; they are calibrated
against the accept/auto-create thresholds above and must not drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Tuple

LatLon = Tuple[float, float]

# North South University, Dhaka (lat, lon): the shared commute destination.
DEFAULT_DESTINATION: LatLon = (23.8103, 90.4125)


@dataclass(frozen=True)
class MatchingPolicy:
    """
    Central configuration for commuter matching.
    """

    # --- Common destination ---
    destination: LatLon = DEFAULT_DESTINATION

    # --- Candidate prefilter ---
    min_overlap_minutes: int = 15
    max_candidate_distance_km: float = 15.0

    # --- Clustering ---
    # Members must be within this distance of the cluster seed.
    max_cluster_distance_km: float = 5.0

    # --- Selection ---
    min_confidence: int = 40
    auto_create_confidence: int = 70
    max_matches: int = 3

    # --- Ride confirmation ---
    confirmation_window: timedelta = timedelta(hours=24)

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.min_overlap_minutes < 0:
            raise ValueError("min_overlap_minutes must be >= 0")

        if self.max_candidate_distance_km <= 0:
            raise ValueError("max_candidate_distance_km must be > 0")

        if self.max_cluster_distance_km <= 0:
            raise ValueError("max_cluster_distance_km must be > 0")

        if not 0 <= self.min_confidence <= 100:
            raise ValueError("min_confidence must be in [0, 100]")

        if not 0 <= self.auto_create_confidence <= 100:
            raise ValueError("auto_create_confidence must be in [0, 100]")

        if self.auto_create_confidence < self.min_confidence:
            raise ValueError("auto_create_confidence must be >= min_confidence")

        if self.max_matches <= 0:
            raise ValueError("max_matches must be > 0")

        if self.confirmation_window <= timedelta(0):
            raise ValueError("confirmation_window must be positive")


def default_policy() -> MatchingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = MatchingPolicy()
    p.validate()
    return p
