import random
from datetime import datetime, timedelta, timezone

import pytest

from routing.cost_model import haversine_km
from routing.errors import ProviderError
from routing.optimizer import RouteOptimizer
from routing.providers import Leg, NearestNeighborProvider, ProviderRoute, RouteProvider, Waypoint, nearest_neighbor_order

from helpers import offset

NOW = datetime(2026, 10, 19, 7, 30, tzinfo=timezone.utc)


class MockProvider(RouteProvider):
    """Returns a canned route (or raises) and counts calls."""

    def __init__(self, name, route=None, error=None, configured=True):
        self.name = name
        self._route = route
        self._error = error
        self._configured = configured
        self.calls = 0

    def is_configured(self):
        return self._configured

    def route(self, origin, destination, waypoints):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._route


def _waypoints(points):
    return [Waypoint(key=f"oi_{i}", user_id=f"rider_{i}", coordinates=p) for i, p in enumerate(points)]


def test_nearest_neighbor_visits_closest_first(home_point):
    points = [
        offset(home_point, north_km=1.0),
        offset(home_point, north_km=3.0),
        offset(home_point, north_km=2.0),
    ]
    assert nearest_neighbor_order(home_point, points) == [0, 2, 1]


def test_nearest_neighbor_ties_go_to_lower_index(home_point):
    same = offset(home_point, east_km=1.0)
    assert nearest_neighbor_order(home_point, [same, same]) == [0, 1]


def test_local_route_distance_is_sum_of_legs(home_point, campus):
    points = [offset(home_point, east_km=1.0), offset(home_point, north_km=0.5), offset(home_point, east_km=-0.7)]
    waypoints = _waypoints(points)

    result = RouteOptimizer().optimize(home_point, campus, waypoints, driver_user_id="driver", now=NOW)

    stops = [home_point] + [wp.coordinates for wp in result.ordered_waypoints] + [campus]
    expected_km = sum(haversine_km(a, b) for a, b in zip(stops[:-1], stops[1:]))

    assert result.provider == "local"
    assert result.total_distance_km == pytest.approx(expected_km, rel=1e-9)
    # 25 km/h average
    assert result.total_duration_min == pytest.approx(expected_km / 25.0 * 60.0)
    assert sorted(wp.key for wp in result.ordered_waypoints) == ["oi_0", "oi_1", "oi_2"]


def test_cost_per_person_is_within_rounding(home_point, campus):
    rng = random.Random(8)
    optimizer = RouteOptimizer()

    for riders in range(0, 5):
        points = [offset(home_point, north_km=rng.uniform(-3, 3), east_km=rng.uniform(-3, 3)) for _ in range(riders)]
        result = optimizer.optimize(home_point, campus, _waypoints(points), now=NOW)

        n = result.passengers
        assert n == riders + 1
        assert abs(result.cost_per_person * n - result.total_cost) <= n - 1


def test_etas_accumulate_along_the_route(home_point, campus):
    first = offset(home_point, north_km=1.0)
    second = offset(home_point, north_km=2.0)

    result = RouteOptimizer().optimize(
        home_point, campus, _waypoints([second, first]), driver_user_id="driver", now=NOW
    )

    assert [wp.user_id for wp in result.ordered_waypoints] == ["rider_1", "rider_0"]
    assert result.participant_etas["driver"] == NOW
    assert NOW < result.participant_etas["rider_1"] < result.participant_etas["rider_0"] < result.arrival_eta
    assert result.arrival_eta == NOW + timedelta(seconds=result.total_duration_s)


def test_no_riders_is_a_straight_drive(home_point, campus):
    result = RouteOptimizer().optimize(home_point, campus, [], now=NOW)

    assert result.ordered_waypoints == []
    assert result.total_distance_km == pytest.approx(haversine_km(home_point, campus))


def test_first_configured_provider_wins(home_point, campus):
    canned = ProviderRoute(legs=[Leg(4000, 600), Leg(5000, 700), Leg(3000, 300)], waypoint_order=[1, 0])
    skipped = MockProvider("google", configured=False)
    primary = MockProvider("osrm", route=canned)

    optimizer = RouteOptimizer([skipped, primary])
    result = optimizer.optimize(
        home_point, campus, _waypoints([home_point, home_point]), driver_user_id="driver", now=NOW
    )

    assert skipped.calls == 0
    assert primary.calls == 1
    assert result.provider == "osrm"
    assert result.total_distance_m == 12000
    assert result.total_duration_s == 1600
    assert [wp.key for wp in result.ordered_waypoints] == ["oi_1", "oi_0"]
    assert result.participant_etas["rider_1"] == NOW + timedelta(seconds=600)
    assert result.participant_etas["rider_0"] == NOW + timedelta(seconds=1300)
    assert result.provider_errors == []


def test_failing_providers_fall_through_to_local(home_point, campus):
    down = MockProvider("google", error=ProviderError("quota exceeded", provider="google"))
    short = MockProvider("osrm", route=ProviderRoute(legs=[Leg(1000, 60)], waypoint_order=[0]))

    result = RouteOptimizer([down, short]).optimize(
        home_point, campus, _waypoints([offset(home_point, east_km=1.0)]), now=NOW
    )

    assert result.provider == "local"
    assert down.calls == 1 and short.calls == 1
    assert result.provider_errors[0] == "google: quota exceeded"
    assert result.provider_errors[1].startswith("osrm: expected 2 legs")


def test_bad_waypoint_order_is_rejected(home_point, campus):
    bogus = MockProvider("osrm", route=ProviderRoute(legs=[Leg(1, 1), Leg(1, 1), Leg(1, 1)], waypoint_order=[0, 0]))

    result = RouteOptimizer([bogus]).optimize(home_point, campus, _waypoints([home_point, home_point]), now=NOW)

    assert result.provider == "local"
    assert "invalid waypoint order" in result.provider_errors[0]


def test_local_fallback_failure_propagates(home_point, campus):
    broken_fallback = MockProvider("local", error=ProviderError("bug", provider="local"))

    with pytest.raises(ProviderError):
        RouteOptimizer([], fallback=broken_fallback).optimize(home_point, campus, [], now=NOW)


def test_nearest_neighbor_provider_leg_count(home_point, campus):
    waypoints = _waypoints([offset(home_point, east_km=1.0), offset(home_point, east_km=2.0)])
    route = NearestNeighborProvider().route(home_point, campus, waypoints)

    assert len(route.legs) == 3
    assert route.waypoint_order == [0, 1]


def test_unexpected_provider_exceptions_fall_through(home_point, campus):
    """
    A provider that times out at the socket level (not a ProviderError)
    must not lose the route; the next provider answers.
    """
    hung = MockProvider("google", error=TimeoutError("socket timed out"))
    broken = MockProvider("osrm", error=KeyError("legs"))

    result = RouteOptimizer([hung, broken]).optimize(
        home_point, campus, _waypoints([offset(home_point, east_km=1.0)]), now=NOW
    )

    assert result.provider == "local"
    assert hung.calls == 1 and broken.calls == 1
    assert result.provider_errors[0] == "google: socket timed out"
    assert result.provider_errors[1].startswith("osrm:")
