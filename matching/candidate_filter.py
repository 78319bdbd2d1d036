#Purpose: Non-routing hard eligibility filtering (rule gates).
#Builds the base candidate set before clustering/scoring.
#Responsibilities:
#same commute date, different user
#minimum time-window overlap with the target
#maximum straight-line distance between pickups
#
#Output: "rule-qualified opt-ins" (still not grouped or ranked).
#This is a prefilter only, never a match decision.

import logging
from typing import Iterable, List, Optional

from optins.models import OptIn, ValidationError, overlap_minutes, validate_opt_in
from routing.cost_model import haversine_km

from .policy import MatchingPolicy, default_policy

logger = logging.getLogger(__name__)


def is_compatible(target: OptIn, other: OptIn, policy: MatchingPolicy) -> bool:
    """
    Both gates must pass: overlap >= min_overlap_minutes and pickup distance <= max_candidate_distance_km.
    """
    if overlap_minutes(target.time_window, other.time_window) < policy.min_overlap_minutes:
        return False
    return haversine_km(target.pickup, other.pickup) <= policy.max_candidate_distance_km


def filter_candidates(
    target: OptIn,
    pool: Iterable[OptIn],
    policy: Optional[MatchingPolicy] = None,
) -> List[OptIn]:
    """
    Keep the pool entries that could share a ride with `target`.

    The pool is expected to be same-date already; entries from another date,
    from the target's own user, or the target itself are dropped here as well.
    Malformed entries are skipped (logged), they never abort the filter.
    """
    policy = policy or default_policy()
    eligible: List[OptIn] = []

    for other in pool:
        if other.id == target.id or other.user_id == target.user_id:
            continue
        if other.commute_date != target.commute_date:
            continue

        try:
            validate_opt_in(other)
        except ValidationError as exc:
            logger.warning("Skipping malformed opt-in %s: %s", other.id, exc)
            continue

        if is_compatible(target, other, policy):
            eligible.append(other)

    logger.debug("Candidate filter kept %d opt-ins for target %s", len(eligible), target.id)
    return eligible
