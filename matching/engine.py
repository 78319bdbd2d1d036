"""
Purpose: The matching "orchestrator" (single entry point).
What it does:

Coordinates the pipeline end-to-end:

- loads the target opt-in and its same-date PENDING pool from the datastore

- prefilters the pool (candidate_filter.py)

- clusters around the target (clustering.py)

- enumerates driver/rider groups containing the target (groups.py)

- scores (scoring.py) and routes (routing.RouteOptimizer) each group

- keeps candidates at or above min_confidence, best first, capped at max_matches

Public entry points:

- find_matches(opt_in_id) -> MatchResult
- run_batch(commute_date, dry_run=False) -> BatchSummary

Rule: Engine is the only module other code should call directly for matching.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Set

from optins.models import OptIn, OptInStatus, ValidationError, validate_opt_in
from rides.lifecycle import RideLifecycleManager
from rides.store import Datastore, PersistenceError
from routing.optimizer import RouteOptimizer
from routing.providers import Waypoint, default_provider_chain

from .candidate_filter import filter_candidates
from .clustering import build_clusters, cluster_for
from .groups import RideGroup, groups_containing
from .models import (
    NO_CONFIDENT_MATCH,
    NO_OTHER_OPT_INS,
    BatchDecision,
    BatchSummary,
    MatchCandidate,
    MatchResult,
    OptInOutcome,
)
from .policy import MatchingPolicy, default_policy
from .scoring import ConfidenceScorer

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Matching pipeline with explicitly injected collaborators.
    """

    def __init__(
        self,
        store: Datastore,
        optimizer: Optional[RouteOptimizer] = None,
        lifecycle: Optional[RideLifecycleManager] = None,
        policy: Optional[MatchingPolicy] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ):
        self.policy = policy or default_policy()
        self.policy.validate()
        self.store = store
        self.optimizer = optimizer or RouteOptimizer(default_provider_chain())
        self.lifecycle = lifecycle or RideLifecycleManager(
            store, confirmation_window=self.policy.confirmation_window
        )
        self.scorer = scorer or ConfidenceScorer(self.policy)

    # -------------------------
    # Interactive matching
    # -------------------------

    def find_matches(self, opt_in_id: str, now: Optional[datetime] = None) -> MatchResult:
        """
        Up to max_matches candidates for one opt-in, best first.

        Raises LookupError if the opt-in does not exist and ValidationError if it is malformed.
        An empty result is not an error: MatchResult.reason says why.
        """
        target = self.store.get_opt_in(opt_in_id)
        if target is None:
            raise LookupError(f"Opt-in {opt_in_id} not found")
        validate_opt_in(target)
        return self._match(target, now or datetime.now(timezone.utc), excluded=set())

    def _match(self, target: OptIn, now: datetime, excluded: Set[str]) -> MatchResult:
        pool = [
            o for o in self.store.list_opt_ins(target.commute_date, OptInStatus.PENDING)
            if o.id != target.id and o.user_id != target.user_id and o.id not in excluded
        ]
        if not pool:
            return MatchResult(opt_in_id=target.id, candidates=[], reason=NO_OTHER_OPT_INS)

        eligible = filter_candidates(target, pool, self.policy)
        clusters = build_clusters([target] + eligible, self.policy)
        cluster = cluster_for(clusters, target.id)
        groups = groups_containing(cluster.members, target.id) if cluster else []

        candidates: List[MatchCandidate] = []
        for group in groups:
            candidate = self._evaluate(group, now)
            if candidate is not None:
                candidates.append(candidate)

        candidates.sort(key=lambda c: (-c.confidence, c.route.total_distance_m, c.opt_in_ids))
        top = candidates[: self.policy.max_matches]

        logger.info(
            "Opt-in %s: %d eligible, %d groups, %d confident candidates",
            target.id, len(eligible), len(groups), len(candidates),
        )
        if not top:
            return MatchResult(opt_in_id=target.id, candidates=[], reason=NO_CONFIDENT_MATCH)
        return MatchResult(opt_in_id=target.id, candidates=top)

    def _evaluate(self, group: RideGroup, now: datetime) -> Optional[MatchCandidate]:
        scored = self.scorer.score(group.participants)
        if scored is None or scored.score < self.policy.min_confidence:
            return None

        waypoints = [
            Waypoint(key=r.id, user_id=r.user_id, coordinates=r.pickup, location_id=r.pickup_location.id)
            for r in group.riders
        ]
        route = self.optimizer.optimize(
            group.driver.pickup,
            self.policy.destination,
            waypoints,
            driver_user_id=group.driver.user_id,
            now=now,
        )
        return MatchCandidate(
            participants=group.participants,
            confidence=scored.score,
            route=route,
            reasoning=scored.reasoning,
            metrics=scored.metrics,
        )

    # -------------------------
    # Batch matching
    # -------------------------

    def run_batch(
        self,
        commute_date: date,
        dry_run: bool = False,
        now: Optional[datetime] = None,
    ) -> BatchSummary:
        """
        Match every PENDING opt-in of `commute_date`.

        Candidates strictly above auto_create_confidence are persisted (recorded
        only, when dry_run) and all their opt-ins are claimed for the rest of the
        run so nobody is double-booked within one batch. The claimed set lives in
        this call only; concurrent batches over the same date are not coordinated.
        """
        now = now or datetime.now(timezone.utc)
        opt_ins = self.store.list_opt_ins(commute_date, OptInStatus.PENDING)
        summary = BatchSummary(commute_date=commute_date, dry_run=dry_run, total_opt_ins=len(opt_ins))
        logger.info("Running batch matching for %s (dry_run=%s): %d pending opt-ins", commute_date, dry_run, len(opt_ins))

        claimed: Set[str] = set()

        for opt_in in opt_ins:
            if opt_in.id in claimed:
                continue

            try:
                validate_opt_in(opt_in)
            except ValidationError as exc:
                logger.warning("Skipping malformed opt-in %s: %s", opt_in.id, exc)
                summary.errors.append(str(exc))
                summary.outcomes.append(OptInOutcome(opt_in.id, opt_in.user_id, error=str(exc)))
                continue

            result = self._match(opt_in, now, excluded=claimed)
            summary.candidates_considered += len(result.candidates)
            summary.opt_ins_processed += 1

            good = [c for c in result.candidates if c.confidence > self.policy.auto_create_confidence]
            created = 0
            for candidate in good:
                if any(opt_in_id in claimed for opt_in_id in candidate.opt_in_ids):
                    continue

                ride_id = None
                if not dry_run:
                    try:
                        creation = self.lifecycle.create_ride(candidate, commute_date, now)
                    except PersistenceError as exc:
                        logger.error("Dropping candidate %s: %s", candidate.opt_in_ids, exc)
                        summary.errors.append(f"{opt_in.id}: {exc}")
                        continue
                    ride_id = creation.ride.id
                    summary.errors.extend(creation.errors)
                    summary.rides_created += 1
                    created += 1

                claimed.update(candidate.opt_in_ids)
                summary.decisions.append(
                    BatchDecision(
                        target_opt_in_id=opt_in.id,
                        opt_in_ids=candidate.opt_in_ids,
                        confidence=candidate.confidence,
                        cost_per_person=candidate.route.cost_per_person,
                        ride_id=ride_id,
                    )
                )

            summary.outcomes.append(
                OptInOutcome(
                    opt_in_id=opt_in.id,
                    user_id=opt_in.user_id,
                    matches_found=len(result.candidates),
                    good_matches=len(good),
                    rides_created=created,
                    reason=result.reason,
                )
            )

        logger.info(
            "Batch %s done: %d processed, %d candidates, %d rides created, %d errors",
            commute_date, summary.opt_ins_processed, summary.candidates_considered,
            summary.rides_created, len(summary.errors),
        )
        return summary
