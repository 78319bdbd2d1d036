"""
Matching package.

Public API:
- MatchEngine (find_matches, run_batch)
- MatchingPolicy, default_policy
- MatchCandidate, MatchResult, BatchSummary
- Pipeline pieces: filter_candidates, build_clusters, generate_groups, score_group
"""

from .candidate_filter import filter_candidates
from .clustering import Cluster, build_clusters
from .engine import MatchEngine
from .groups import RideGroup, generate_groups, groups_containing
from .models import BatchDecision, BatchSummary, MatchCandidate, MatchResult, OptInOutcome
from .policy import MatchingPolicy, default_policy
from .scoring import ConfidenceScore, ConfidenceScorer, score_group

__all__ = [
    "BatchDecision",
    "BatchSummary",
    "Cluster",
    "ConfidenceScore",
    "ConfidenceScorer",
    "MatchCandidate",
    "MatchEngine",
    "MatchResult",
    "MatchingPolicy",
    "OptInOutcome",
    "RideGroup",
    "build_clusters",
    "default_policy",
    "filter_candidates",
    "generate_groups",
    "groups_containing",
    "score_group",
]
