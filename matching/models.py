"""
Purpose: Transient results of a matching run.
- MatchCandidate: one scored and routed (driver, riders) group
- MatchResult: up to max_matches candidates for one opt-in, or an explicit reason
- BatchSummary: counts, decisions and errors of a batch run

Rule: Nothing here is persisted; rides/ owns persistence.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from optins.models import OptIn
from routing.optimizer import RouteResult

from .scoring import GroupMetrics

NO_OTHER_OPT_INS = "no other opt-ins available"
NO_CONFIDENT_MATCH = "no match met minimum confidence"


@dataclass(frozen=True)
class MatchCandidate:
    """
    Exactly one driver (first) followed by riders; rider count <= driver capacity.
    """
    participants: List[OptIn]
    confidence: int
    route: RouteResult
    reasoning: str
    metrics: GroupMetrics

    @property
    def driver(self) -> OptIn:
        return self.participants[0]

    @property
    def riders(self) -> List[OptIn]:
        return self.participants[1:]

    @property
    def opt_in_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self.participants)


@dataclass(frozen=True)
class MatchResult:
    opt_in_id: str
    candidates: List[MatchCandidate]
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.candidates)


@dataclass(frozen=True)
class BatchDecision:
    """
    A candidate the batch accepted (created, or would create in a dry run).
    """
    target_opt_in_id: str
    opt_in_ids: Tuple[str, ...]
    confidence: int
    cost_per_person: int
    ride_id: Optional[str] = None


@dataclass(frozen=True)
class OptInOutcome:
    opt_in_id: str
    user_id: str
    matches_found: int = 0
    good_matches: int = 0
    rides_created: int = 0
    reason: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchSummary:
    commute_date: date
    dry_run: bool
    total_opt_ins: int = 0
    opt_ins_processed: int = 0
    candidates_considered: int = 0
    rides_created: int = 0
    decisions: List[BatchDecision] = field(default_factory=list)
    outcomes: List[OptInOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
