"""
Purpose: The datastore contract the matching core talks to, plus an in-memory implementation.
What it does:
- Datastore: the CRUD surface (opt-ins by date/status, rides, participants)
- InMemoryDatastore: dict-backed implementation used by tests and the simulation script

Provides operations:
   - get_opt_in / list_opt_ins(date, status) / update_opt_in_status
   - insert_ride / get_ride / update_ride_status / delete_ride (rollback only)
   - insert_participants / list_participants / update_participant
   - list_rides_for_user

Rule: The store owns records, not rules. State-machine checks live in
rides/state_machines, orchestration in rides/lifecycle.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from optins.models import OptIn, OptInStatus

from .models import Participant, Ride, RideStatus


class PersistenceError(Exception):
    """A datastore write or read failed."""
    pass


class Datastore(ABC):
    """
    Implementations report failures as PersistenceError. Ride creation also
    wraps any other backend exception so a failed write never leaves a
    half-created ride behind.
    """

    # --- opt-ins ---
    @abstractmethod
    def get_opt_in(self, opt_in_id: str) -> Optional[OptIn]: ...

    @abstractmethod
    def list_opt_ins(self, commute_date: date, status: OptInStatus = OptInStatus.PENDING) -> List[OptIn]: ...

    @abstractmethod
    def update_opt_in_status(self, opt_in_ids: Iterable[str], status: OptInStatus) -> None: ...

    # --- rides ---
    @abstractmethod
    def insert_ride(self, ride: Ride) -> Ride: ...

    @abstractmethod
    def get_ride(self, ride_id: str) -> Optional[Ride]: ...

    @abstractmethod
    def update_ride_status(self, ride_id: str, status: RideStatus, reason: Optional[str] = None) -> Ride: ...

    @abstractmethod
    def delete_ride(self, ride_id: str) -> None: ...

    @abstractmethod
    def list_rides_for_user(self, user_id: str, status: Optional[RideStatus] = None) -> List[Ride]: ...

    # --- participants ---
    @abstractmethod
    def insert_participants(self, participants: List[Participant]) -> List[Participant]: ...

    @abstractmethod
    def list_participants(self, ride_id: str) -> List[Participant]: ...

    @abstractmethod
    def update_participant(self, participant: Participant) -> Participant: ...


@dataclass
class InMemoryDatastore(Datastore):
    """
    Dict-backed datastore. Records are copied on the way in and out so callers
    cannot mutate stored state behind the store's back.

    The fail_* flags inject persistence failures for tests.
    """
    _opt_ins: Dict[str, OptIn] = field(default_factory=dict)
    _rides: Dict[str, Ride] = field(default_factory=dict)
    _participants: Dict[str, List[Participant]] = field(default_factory=dict)  # by ride id

    fail_ride_inserts: bool = False
    fail_participant_inserts: bool = False
    fail_opt_in_updates: bool = False

    # --- opt-ins ---

    def add_opt_in(self, opt_in: OptIn) -> None:
        """
        Seed an opt-in (creation belongs to the outer application).
        """
        self._opt_ins[opt_in.id] = replace(opt_in)

    def add_opt_ins(self, opt_ins: Iterable[OptIn]) -> None:
        for opt_in in opt_ins:
            self.add_opt_in(opt_in)

    def get_opt_in(self, opt_in_id: str) -> Optional[OptIn]:
        opt_in = self._opt_ins.get(opt_in_id)
        return replace(opt_in) if opt_in else None

    def list_opt_ins(self, commute_date: date, status: OptInStatus = OptInStatus.PENDING) -> List[OptIn]:
        matches = [
            o for o in self._opt_ins.values()
            if o.commute_date == commute_date and o.status == status
        ]
        matches.sort(key=lambda o: o.created_at)
        return [replace(o) for o in matches]

    def update_opt_in_status(self, opt_in_ids: Iterable[str], status: OptInStatus) -> None:
        if self.fail_opt_in_updates:
            raise PersistenceError("opt-in status update failed")
        for opt_in_id in opt_in_ids:
            opt_in = self._opt_ins.get(opt_in_id)
            if opt_in is None:
                raise PersistenceError(f"Opt-in {opt_in_id} not found")
            opt_in.status = status

    # --- rides ---

    def insert_ride(self, ride: Ride) -> Ride:
        if self.fail_ride_inserts:
            raise PersistenceError("ride insert failed")
        if ride.id in self._rides:
            raise PersistenceError(f"Ride {ride.id} already exists")
        self._rides[ride.id] = replace(ride)
        self._participants[ride.id] = []
        return replace(ride)

    def get_ride(self, ride_id: str) -> Optional[Ride]:
        ride = self._rides.get(ride_id)
        return replace(ride) if ride else None

    def update_ride_status(self, ride_id: str, status: RideStatus, reason: Optional[str] = None) -> Ride:
        ride = self._rides.get(ride_id)
        if ride is None:
            raise PersistenceError(f"Ride {ride_id} not found")
        ride.status = status
        ride.updated_at = datetime.now(timezone.utc)
        if reason is not None:
            ride.cancellation_reason = reason
        return replace(ride)

    def delete_ride(self, ride_id: str) -> None:
        # participants are owned by the ride
        self._rides.pop(ride_id, None)
        self._participants.pop(ride_id, None)

    def list_rides_for_user(self, user_id: str, status: Optional[RideStatus] = None) -> List[Ride]:
        rides = []
        for ride_id, participants in self._participants.items():
            if not any(p.user_id == user_id for p in participants):
                continue
            ride = self._rides[ride_id]
            if status is not None and ride.status != status:
                continue
            rides.append(replace(ride))
        rides.sort(key=lambda r: (r.commute_date, r.created_at), reverse=True)
        return rides

    # --- participants ---

    def insert_participants(self, participants: List[Participant]) -> List[Participant]:
        if self.fail_participant_inserts:
            raise PersistenceError("participant insert failed")
        for participant in participants:
            if participant.ride_id not in self._rides:
                raise PersistenceError(f"Ride {participant.ride_id} not found for participant {participant.user_id}")
        for participant in participants:
            self._participants[participant.ride_id].append(replace(participant))
        return [replace(p) for p in participants]

    def list_participants(self, ride_id: str) -> List[Participant]:
        return [replace(p) for p in self._participants.get(ride_id, [])]

    def update_participant(self, participant: Participant) -> Participant:
        rows = self._participants.get(participant.ride_id)
        if rows is None:
            raise PersistenceError(f"Ride {participant.ride_id} not found")
        for idx, row in enumerate(rows):
            if row.user_id == participant.user_id:
                rows[idx] = replace(participant)
                return replace(participant)
        raise PersistenceError(f"User {participant.user_id} is not on ride {participant.ride_id}")
