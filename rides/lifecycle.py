"""
Purpose: Ride lifecycle orchestrator (the "glue" between matches, the store and the notifier).
What it does:
- create_ride: persists an accepted match candidate as Ride + Participants in one
  logical operation, rolling the Ride back if the Participants cannot be written,
  then flips the opt-ins to MATCHED and sends MATCH notifications.
- respond: records a participant's confirm/decline and re-aggregates the ride status.
- expire_overdue: marks participants past their deadline as NO_RESPONSE (called by the
  external scheduler) and re-aggregates.

Notification failures are logged and returned, they never reverse a transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, List, Optional

from optins.models import OptInStatus

from .models import EventType, Participant, ParticipantStatus, Ride, RideStatus
from .notifier import LoggingNotifier, NotificationResult, Notifier
from .state_machines import (
    DECLINED_REASON,
    aggregate_ride_status,
    check_ride_transition,
    ensure_accepting_responses,
    is_overdue,
    transition_participant,
)
from .store import Datastore, PersistenceError

if TYPE_CHECKING:
    from matching.models import MatchCandidate

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_WINDOW = timedelta(hours=24)


@dataclass
class RideCreation:
    ride: Ride
    participants: List[Participant]
    notification: Optional[NotificationResult] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class RideUpdate:
    ride: Ride
    changed_participants: List[Participant] = field(default_factory=list)
    notification: Optional[NotificationResult] = None
    errors: List[str] = field(default_factory=list)


class RideLifecycleManager:
    """
    Owns every Ride/Participant write. Collaborators are injected so the
    manager runs the same against the in-memory store and a real backend.
    """

    def __init__(
        self,
        store: Datastore,
        notifier: Optional[Notifier] = None,
        confirmation_window: timedelta = DEFAULT_CONFIRMATION_WINDOW,
    ):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.confirmation_window = confirmation_window

    # -------------------------
    # Creation
    # -------------------------

    def create_ride(
        self,
        candidate: "MatchCandidate",
        commute_date: date,
        now: Optional[datetime] = None,
    ) -> RideCreation:
        """
        Raises PersistenceError if the ride could not be stored; in that case no
        ride row survives and no opt-in changed status.
        """
        now = now or datetime.now(timezone.utc)
        driver = candidate.driver
        route = candidate.route

        ride = Ride.new(
            commute_date=commute_date,
            driver_id=driver.user_id,
            cost_per_person=route.cost_per_person,
            total_duration_min=int(round(route.total_duration_min)),
            pickup_order=[driver.user_id] + [wp.user_id for wp in route.ordered_waypoints],
            confidence=candidate.confidence,
            reasoning=candidate.reasoning,
        )
        try:
            ride = self.store.insert_ride(ride)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to create ride: {exc}") from exc

        deadline = now + self.confirmation_window
        participants = [
            Participant(
                ride_id=ride.id,
                user_id=opt_in.user_id,
                opt_in_id=opt_in.id,
                pickup_location_id=opt_in.pickup_location.id,
                confirmation_deadline=deadline,
            )
            for opt_in in candidate.participants
        ]

        try:
            participants = self.store.insert_participants(participants)
        except Exception as exc:
            logger.error("Participants for ride %s could not be stored, rolling back: %s", ride.id, exc)
            self._rollback(ride.id)
            raise PersistenceError(f"Failed to create ride participants: {exc}") from exc

        errors: List[str] = []
        try:
            self.store.update_opt_in_status(candidate.opt_in_ids, OptInStatus.MATCHED)
        except Exception as exc:
            # The ride itself is complete; the opt-in flags can be repaired later.
            logger.error("Ride %s created but opt-in statuses not updated: %s", ride.id, exc)
            errors.append(f"opt-in status update failed: {exc}")

        notification = self._notify(ride.id, EventType.MATCH)
        errors.extend(notification.errors)

        logger.info(
            "Created ride %s (%d participants, confidence %d)", ride.id, len(participants), ride.confidence
        )
        return RideCreation(ride=ride, participants=participants, notification=notification, errors=errors)

    # -------------------------
    # Participant actions
    # -------------------------

    def respond(
        self,
        ride_id: str,
        user_id: str,
        status: ParticipantStatus,
        now: Optional[datetime] = None,
    ) -> RideUpdate:
        if status not in (ParticipantStatus.CONFIRMED, ParticipantStatus.DECLINED):
            raise ValueError(f"Participants can only confirm or decline, not {status.value}")

        ride = self._get_ride(ride_id)
        ensure_accepting_responses(ride)

        participant = self._get_participant(ride_id, user_id)
        updated = transition_participant(participant, status, now)
        if updated is not participant:
            self.store.update_participant(updated)
            logger.info("Ride %s: %s %s", ride_id, user_id, status.value)

        result = self.aggregate(ride_id)
        result.changed_participants = [updated]
        return result

    def confirm(self, ride_id: str, user_id: str, now: Optional[datetime] = None) -> RideUpdate:
        return self.respond(ride_id, user_id, ParticipantStatus.CONFIRMED, now)

    def decline(self, ride_id: str, user_id: str, now: Optional[datetime] = None) -> RideUpdate:
        return self.respond(ride_id, user_id, ParticipantStatus.DECLINED, now)

    def expire_overdue(self, ride_id: str, now: Optional[datetime] = None) -> RideUpdate:
        """
        Mark still-pending participants whose deadline has passed as NO_RESPONSE.
        Deadline enforcement is the scheduler's job; this is the hook it calls.
        """
        now = now or datetime.now(timezone.utc)
        ride = self._get_ride(ride_id)
        if ride.status.is_terminal:
            return RideUpdate(ride=ride)

        expired: List[Participant] = []
        for participant in self.store.list_participants(ride_id):
            if is_overdue(participant, now):
                updated = transition_participant(participant, ParticipantStatus.NO_RESPONSE, now)
                self.store.update_participant(updated)
                expired.append(updated)

        if expired:
            logger.info("Ride %s: %d participant(s) did not respond in time", ride_id, len(expired))

        result = self.aggregate(ride_id)
        result.changed_participants = expired
        return result

    # -------------------------
    # Aggregation
    # -------------------------

    def aggregate(self, ride_id: str) -> RideUpdate:
        """
        Apply the aggregation rule to the ride's current participants and
        notify on a status change.
        """
        ride = self._get_ride(ride_id)
        new_status = aggregate_ride_status(self.store.list_participants(ride_id))
        if new_status is None or new_status == ride.status:
            return RideUpdate(ride=ride)

        check_ride_transition(ride, new_status)
        if new_status == RideStatus.CANCELLED:
            ride = self.store.update_ride_status(ride_id, new_status, reason=DECLINED_REASON)
            notification = self._notify(ride_id, EventType.CANCELLATION, DECLINED_REASON)
        else:
            ride = self.store.update_ride_status(ride_id, new_status)
            notification = self._notify(ride_id, EventType.CONFIRMATION)

        logger.info("Ride %s is now %s", ride_id, new_status.value)
        return RideUpdate(ride=ride, notification=notification, errors=list(notification.errors))

    def rides_for_user(self, user_id: str, status: Optional[RideStatus] = None) -> List[Ride]:
        return self.store.list_rides_for_user(user_id, status)

    # -------------------------
    # Internal helpers
    # -------------------------

    def _get_ride(self, ride_id: str) -> Ride:
        ride = self.store.get_ride(ride_id)
        if ride is None:
            raise LookupError(f"Ride {ride_id} not found")
        return ride

    def _get_participant(self, ride_id: str, user_id: str) -> Participant:
        for participant in self.store.list_participants(ride_id):
            if participant.user_id == user_id:
                return participant
        raise LookupError(f"User {user_id} is not a participant of ride {ride_id}")

    def _rollback(self, ride_id: str) -> None:
        try:
            self.store.delete_ride(ride_id)
        except Exception as exc:
            logger.critical("Rollback of ride %s failed, orphan ride left behind: %s", ride_id, exc)
            raise PersistenceError(f"Rollback of ride {ride_id} failed: {exc}") from exc

    def _notify(self, ride_id: str, event_type: EventType, reason: Optional[str] = None) -> NotificationResult:
        try:
            result = self.notifier.notify(ride_id, event_type, reason)
        except Exception as exc:
            logger.error("%s notification for ride %s failed: %s", event_type.value, ride_id, exc)
            return NotificationResult(failed=1, errors=[f"{event_type.value} notification failed: {exc}"])

        if not result.success:
            logger.warning("Some %s notifications for ride %s failed: %s", event_type.value, ride_id, result.errors)
        return result
