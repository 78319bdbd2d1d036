from typing import Optional, Sequence

from rides.models import Participant, ParticipantStatus, Ride, RideStatus

DECLINED_REASON = "One or more participants declined the ride"


class RideStateException(Exception):
    """Raised when an invalid ride transition is attempted."""
    pass


def aggregate_ride_status(participants: Sequence[Participant]) -> Optional[RideStatus]:
    """
    Evaluated after every participant status write:
    - any DECLINED -> CANCELLED
    - else all CONFIRMED -> CONFIRMED
    - otherwise no change (None)
    """
    if not participants:
        return None

    statuses = [p.status for p in participants]
    if ParticipantStatus.DECLINED in statuses:
        return RideStatus.CANCELLED
    if all(status == ParticipantStatus.CONFIRMED for status in statuses):
        return RideStatus.CONFIRMED
    return None


def check_ride_transition(ride: Ride, new_status: RideStatus) -> None:
    """
    PROPOSED -> CONFIRMED | CANCELLED. Both targets are terminal.
    """
    if ride.status == new_status:
        return
    if ride.status != RideStatus.PROPOSED:
        raise RideStateException(f"Ride {ride.id} is {ride.status.value}; cannot move to {new_status.value}")
    if new_status == RideStatus.PROPOSED:
        raise RideStateException(f"Ride {ride.id} cannot return to PROPOSED")


def ensure_accepting_responses(ride: Ride) -> None:
    if ride.status != RideStatus.PROPOSED:
        raise RideStateException(f"Ride {ride.id} is {ride.status.value} and no longer accepts responses")
