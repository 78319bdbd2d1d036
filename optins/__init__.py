"""
Opt-ins domain package.

Public API:
- Domain models: OptIn, TimeWindow, PickupLocation, Role, OptInStatus
- Validation: validate_opt_in, ValidationError
- Time math: overlap_minutes
"""
from .models import (
    LatLon,
    OptIn,
    OptInStatus,
    PickupLocation,
    Role,
    TimeWindow,
    ValidationError,
    overlap_minutes,
    validate_opt_in,
)

__all__ = [
    "LatLon",
    "OptIn",
    "OptInStatus",
    "PickupLocation",
    "Role",
    "TimeWindow",
    "ValidationError",
    "overlap_minutes",
    "validate_opt_in",
]
