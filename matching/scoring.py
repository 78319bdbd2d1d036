"""
Purpose: Deterministic compatibility score (0-100) for a candidate ride group.
What it does:

Computes for each group:

min_overlap = smallest pairwise time-window overlap (minutes)

max_spread = largest pairwise pickup distance (km)

utilization = riders / driver capacity

avg_to_destination = mean pickup → destination distance (km)

Applies the confidence formula:

reject if driver count != 1, riders > capacity, or min_overlap < 15

base 50
overlap >= 60: +15 | 30-59: +10
spread < 2 km: +20 | 2-5 km: +10 | 5-10 km: 0 | > 10 km: -20
utilization in [0.5, 1.0]: +5
avg_to_destination < 10 km: +5 | > 20 km: -5
clamp to [0, 100]

Rule: Scoring ranks groups; it does not route, persist, or select.
The accept (>= 40) and auto-create (> 70) thresholds are calibrated against
these exact deltas.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Optional, Sequence

from optins.models import LatLon, OptIn, Role, overlap_minutes
from routing.cost_model import haversine_km

from .policy import MatchingPolicy, default_policy

BASE_SCORE = 50

LONG_OVERLAP_MINUTES = 60
LONG_OVERLAP_BONUS = 15
MEDIUM_OVERLAP_MINUTES = 30
MEDIUM_OVERLAP_BONUS = 10

TIGHT_SPREAD_KM = 2.0
TIGHT_SPREAD_BONUS = 20
MODERATE_SPREAD_KM = 5.0
MODERATE_SPREAD_BONUS = 10
WIDE_SPREAD_KM = 10.0
WIDE_SPREAD_PENALTY = -20

UTILIZATION_RANGE = (0.5, 1.0)
UTILIZATION_BONUS = 5

NEAR_DESTINATION_KM = 10.0
NEAR_DESTINATION_BONUS = 5
FAR_DESTINATION_KM = 20.0
FAR_DESTINATION_PENALTY = -5


@dataclass(frozen=True)
class GroupMetrics:
    driver_count: int
    rider_count: int
    capacity: int
    min_overlap_minutes: int
    max_spread_km: float
    avg_destination_km: float

    @property
    def utilization(self) -> float:
        if self.capacity <= 0:
            return 0.0
        return self.rider_count / self.capacity


@dataclass(frozen=True)
class ConfidenceScore:
    score: int
    metrics: GroupMetrics
    reasoning: str


class ConfidenceScorer:
    """
    Deterministic scorer. Anything else that scores groups (e.g. an external
    model) must return the same Optional[ConfidenceScore] contract.
    """

    def __init__(self, policy: Optional[MatchingPolicy] = None):
        self.policy = policy or default_policy()

    def score(self, participants: Sequence[OptIn]) -> Optional[ConfidenceScore]:
        return score_group(participants, self.policy.destination, self.policy)


def compute_metrics(participants: Sequence[OptIn], destination: LatLon) -> GroupMetrics:
    drivers = [p for p in participants if p.role == Role.DRIVER]
    riders = [p for p in participants if p.role == Role.RIDER]
    capacity = (drivers[0].driver_capacity or 0) if len(drivers) == 1 else 0

    pairs = list(combinations(participants, 2))
    if pairs:
        min_overlap = min(overlap_minutes(a.time_window, b.time_window) for a, b in pairs)
        max_spread = max(haversine_km(a.pickup, b.pickup) for a, b in pairs)
    else:
        min_overlap = 0
        max_spread = 0.0

    if participants:
        avg_destination = sum(haversine_km(p.pickup, destination) for p in participants) / len(participants)
    else:
        avg_destination = 0.0

    return GroupMetrics(
        driver_count=len(drivers),
        rider_count=len(riders),
        capacity=capacity,
        min_overlap_minutes=min_overlap,
        max_spread_km=max_spread,
        avg_destination_km=avg_destination,
    )


def score_group(
    participants: Sequence[OptIn],
    destination: LatLon,
    policy: Optional[MatchingPolicy] = None,
) -> Optional[ConfidenceScore]:
    """
    Score a candidate group. Returns None when the group is infeasible.
    """
    policy = policy or default_policy()
    metrics = compute_metrics(participants, destination)

    if metrics.driver_count != 1:
        return None
    if metrics.rider_count > metrics.capacity:
        return None
    if len(participants) < 2 or metrics.min_overlap_minutes < policy.min_overlap_minutes:
        return None

    score = BASE_SCORE
    score += _overlap_bonus(metrics.min_overlap_minutes)
    score += _spread_term(metrics.max_spread_km)

    low, high = UTILIZATION_RANGE
    if low <= metrics.utilization <= high:
        score += UTILIZATION_BONUS

    score += _destination_term(metrics.avg_destination_km)
    score = max(0, min(100, score))

    return ConfidenceScore(score=score, metrics=metrics, reasoning=describe(metrics))


def describe(metrics: GroupMetrics) -> str:
    """
    Human-readable explanation stored with the ride.
    """
    if metrics.min_overlap_minutes >= LONG_OVERLAP_MINUTES:
        timing = "Excellent"
    elif metrics.min_overlap_minutes >= MEDIUM_OVERLAP_MINUTES:
        timing = "Good"
    else:
        timing = "Acceptable"

    return (
        f"{timing} time overlap ({metrics.min_overlap_minutes} min), "
        f"pickups within {metrics.max_spread_km:.1f} km of each other, "
        f"{metrics.rider_count}/{metrics.capacity} seats filled, "
        f"{metrics.avg_destination_km:.1f} km average to destination."
    )


# -------------------------
# Internal helpers
# -------------------------

def _overlap_bonus(minutes: int) -> int:
    if minutes >= LONG_OVERLAP_MINUTES:
        return LONG_OVERLAP_BONUS
    if minutes >= MEDIUM_OVERLAP_MINUTES:
        return MEDIUM_OVERLAP_BONUS
    return 0


def _spread_term(spread_km: float) -> int:
    if spread_km < TIGHT_SPREAD_KM:
        return TIGHT_SPREAD_BONUS
    if spread_km <= MODERATE_SPREAD_KM:
        return MODERATE_SPREAD_BONUS
    if spread_km <= WIDE_SPREAD_KM:
        return 0
    return WIDE_SPREAD_PENALTY


def _destination_term(avg_km: float) -> int:
    if avg_km < NEAR_DESTINATION_KM:
        return NEAR_DESTINATION_BONUS
    if avg_km > FAR_DESTINATION_KM:
        return FAR_DESTINATION_PENALTY
    return 0


__all__ = [
    "ConfidenceScore",
    "ConfidenceScorer",
    "GroupMetrics",
    "compute_metrics",
    "describe",
    "score_group",
]
