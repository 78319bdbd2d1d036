from datetime import date, datetime, timezone
from itertools import count

import pytest

from optins.models import OptIn, PickupLocation, Role, TimeWindow
from matching.policy import DEFAULT_DESTINATION
from helpers import RecordingNotifier, offset
from rides.store import InMemoryDatastore


@pytest.fixture
def commute_date():
    return date(2026, 10, 19)


@pytest.fixture
def now():
    return datetime(2026, 10, 18, 20, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def campus():
    return DEFAULT_DESTINATION


@pytest.fixture
def home_point(campus):
    # ~3 km south of campus
    return offset(campus, north_km=-3.0)


@pytest.fixture
def make_opt_in(commute_date):
    """
    Factory: make_opt_in("RIDER", ("08:00", "08:30"), point, capacity=None)
    Each call gets a fresh id and user id unless given.
    """
    ids = count(1)

    def _make(role, window, point, capacity=None, user_id=None, opt_in_id=None):
        n = next(ids)
        role = Role(role)
        return OptIn(
            id=opt_in_id or f"oi_{n}",
            user_id=user_id or f"user_{n}",
            commute_date=commute_date,
            time_window=TimeWindow.from_hhmm(*window),
            pickup_location=PickupLocation(id=f"loc_{n}", coordinates=point, name=f"Stop {n}"),
            role=role,
            driver_capacity=capacity if capacity is not None else (4 if role == Role.DRIVER else None),
            created_at=datetime(2026, 10, 18, 7, 0, 0, n, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def store():
    return InMemoryDatastore()


@pytest.fixture
def notifier():
    return RecordingNotifier()
