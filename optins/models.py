"""
Purpose: Domain models for the Opt-ins capability.
What it does:
- Defines core data structures:
- OptIn (id, user_id, commute_date, time window, pickup location, role, capacity, status)
- TimeWindow (start/end as minute-of-day integers)
- PickupLocation (id, (lat, lon) coordinates, name)

Defines enums/constants:
- Role = DRIVER | RIDER
- OptInStatus = PENDING | MATCHED | CANCELLED

Defines model validation rules (validate_opt_in).

Rule: No routing calls, no matching logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Tuple

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

MINUTES_PER_DAY = 24 * 60


class ValidationError(Exception):
    """Raised when an opt-in is malformed (missing window/role/location)."""
    pass


class Role(str, Enum):
    DRIVER = "DRIVER"
    RIDER = "RIDER"


class OptInStatus(str, Enum):
    PENDING = "PENDING"
    MATCHED = "MATCHED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class TimeWindow:
    """
    Departure window expressed in minutes since midnight.
    """
    start: int
    end: int

    @classmethod
    def from_hhmm(cls, start: str, end: str) -> TimeWindow:
        return cls(start=_parse_hhmm(start), end=_parse_hhmm(end))

    def overlap_minutes(self, other: TimeWindow) -> int:
        return overlap_minutes(self, other)

    def as_hhmm(self) -> str:
        return f"{_format_hhmm(self.start)}-{_format_hhmm(self.end)}"


@dataclass(frozen=True)
class PickupLocation:
    id: str
    coordinates: LatLon
    name: str = ""

    @classmethod
    def from_lng_lat(cls, location_id: str, lng: float, lat: float, name: str = "") -> PickupLocation:
        # Stored records keep GeoJSON order (lng, lat); internally we use (lat, lon).
        return cls(id=location_id, coordinates=(float(lat), float(lng)), name=name)


@dataclass
class OptIn:
    """
    A user's declared intent to share a ride on a date, within a time window,
    from a pickup location, as DRIVER or RIDER.
    """

    id: str
    user_id: str
    commute_date: date
    time_window: TimeWindow
    pickup_location: PickupLocation
    role: Role

    # Seats offered to riders. Only meaningful for drivers.
    driver_capacity: Optional[int] = None

    status: OptInStatus = OptInStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def pickup(self) -> LatLon:
        return self.pickup_location.coordinates

    @property
    def is_driver(self) -> bool:
        return self.role == Role.DRIVER


def overlap_minutes(a: TimeWindow, b: TimeWindow) -> int:
    """
    Length of the intersection of two windows; 0 when they do not intersect.
    """
    return max(0, min(a.end, b.end) - max(a.start, b.start))


def validate_opt_in(opt_in: OptIn) -> OptIn:
    """
    Reject malformed opt-ins before they reach the matching pipeline.
    Returns the opt-in unchanged so it can be used inline.
    """
    window = opt_in.time_window
    if window is None:
        raise ValidationError(f"Opt-in {opt_in.id} has no time window")
    if not (0 <= window.start < MINUTES_PER_DAY and 0 < window.end <= MINUTES_PER_DAY):
        raise ValidationError(f"Opt-in {opt_in.id} has a time window outside the day: {window}")
    if window.start >= window.end:
        raise ValidationError(f"Opt-in {opt_in.id} window start must be before end ({window.as_hhmm()})")

    if not isinstance(opt_in.role, Role):
        raise ValidationError(f"Opt-in {opt_in.id} has no valid role: {opt_in.role!r}")

    location = opt_in.pickup_location
    if location is None or location.coordinates is None:
        raise ValidationError(f"Opt-in {opt_in.id} has no pickup location")
    lat, lon = location.coordinates
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise ValidationError(f"Opt-in {opt_in.id} pickup coordinates out of range: {location.coordinates}")

    if opt_in.role == Role.DRIVER and (opt_in.driver_capacity is None or opt_in.driver_capacity < 1):
        raise ValidationError(f"Driver opt-in {opt_in.id} must offer at least one seat")

    return opt_in


# -------------------------
# Internal helpers
# -------------------------

def _parse_hhmm(value: str) -> int:
    try:
        hours, minutes = value.split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f"Invalid time of day: {value!r}") from exc


def _format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
