from .participant_state import ParticipantStateException, is_overdue, transition_participant
from .ride_state import (
    DECLINED_REASON,
    RideStateException,
    aggregate_ride_status,
    check_ride_transition,
    ensure_accepting_responses,
)

__all__ = [
    "DECLINED_REASON",
    "ParticipantStateException",
    "RideStateException",
    "aggregate_ride_status",
    "check_ride_transition",
    "ensure_accepting_responses",
    "is_overdue",
    "transition_participant",
]
