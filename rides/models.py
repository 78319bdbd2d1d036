"""
Purpose: Core data models for the rides domain.
What it does:
Defines the persisted Ride and its Participants without relying on any ORM.

- RideStatus = PROPOSED | CONFIRMED | CANCELLED
- ParticipantStatus = PENDING_ACCEPTANCE | CONFIRMED | DECLINED | NO_RESPONSE
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional


class RideStatus(str, Enum):
    PROPOSED = "PROPOSED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self != RideStatus.PROPOSED


class ParticipantStatus(str, Enum):
    PENDING_ACCEPTANCE = "PENDING_ACCEPTANCE"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    NO_RESPONSE = "NO_RESPONSE"

    @property
    def is_terminal(self) -> bool:
        return self != ParticipantStatus.PENDING_ACCEPTANCE


class EventType(str, Enum):
    MATCH = "MATCH"
    CONFIRMATION = "CONFIRMATION"
    CANCELLATION = "CANCELLATION"


@dataclass
class Ride:
    """
    The persisted, confirmable record created from an accepted match candidate.
    """
    id: str
    commute_date: date
    driver_id: str
    cost_per_person: int
    total_duration_min: int
    pickup_order: List[str]  # user ids, driver first
    confidence: int
    reasoning: str

    status: RideStatus = RideStatus.PROPOSED
    cancellation_reason: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    @staticmethod
    def new(
        commute_date: date,
        driver_id: str,
        cost_per_person: int,
        total_duration_min: int,
        pickup_order: List[str],
        confidence: int,
        reasoning: str,
    ) -> Ride:
        return Ride(
            id=str(uuid.uuid4()),
            commute_date=commute_date,
            driver_id=driver_id,
            cost_per_person=cost_per_person,
            total_duration_min=total_duration_min,
            pickup_order=list(pickup_order),
            confidence=confidence,
            reasoning=reasoning,
        )


@dataclass
class Participant:
    """
    One user's membership and response status within a Ride.
    """
    ride_id: str
    user_id: str
    opt_in_id: str
    pickup_location_id: Optional[str]
    confirmation_deadline: datetime

    status: ParticipantStatus = ParticipantStatus.PENDING_ACCEPTANCE
    responded_at: Optional[datetime] = None
