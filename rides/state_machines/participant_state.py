from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from rides.models import Participant, ParticipantStatus


class ParticipantStateException(Exception):
    """Raised when an invalid participant transition is attempted."""
    pass


def transition_participant(
    participant: Participant,
    new_status: ParticipantStatus,
    now: Optional[datetime] = None,
) -> Participant:
    """
    PENDING_ACCEPTANCE -> CONFIRMED | DECLINED | NO_RESPONSE.
    Terminal statuses never change again; re-sending the same answer is a no-op.
    """
    if participant.status == new_status:
        return participant

    if participant.status != ParticipantStatus.PENDING_ACCEPTANCE:
        raise ParticipantStateException(
            f"Participant {participant.user_id} on ride {participant.ride_id} already {participant.status.value}"
        )

    if new_status == ParticipantStatus.PENDING_ACCEPTANCE:
        raise ParticipantStateException("Cannot move a participant back to PENDING_ACCEPTANCE")

    # Participant is treated as a value here; the store persists the replacement.
    return replace(participant, status=new_status, responded_at=now or datetime.now(timezone.utc))


def is_overdue(participant: Participant, now: datetime) -> bool:
    return (
        participant.status == ParticipantStatus.PENDING_ACCEPTANCE
        and participant.confirmation_deadline <= now
    )
