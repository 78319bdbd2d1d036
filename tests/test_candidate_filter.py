import random
from datetime import date

from matching.candidate_filter import filter_candidates
from matching.policy import MatchingPolicy
from optins.models import TimeWindow, overlap_minutes
from routing.cost_model import haversine_km

from helpers import offset


def test_overlap_is_symmetric():
    """
    overlap(a, b) == overlap(b, a) for arbitrary windows, and 0 when disjoint.
    """
    rng = random.Random(11)
    for _ in range(200):
        s1, s2 = rng.randint(0, 1400), rng.randint(0, 1400)
        a = TimeWindow(s1, s1 + rng.randint(1, 39))
        b = TimeWindow(s2, s2 + rng.randint(1, 39))

        assert overlap_minutes(a, b) == overlap_minutes(b, a)
        assert overlap_minutes(a, b) >= 0
        if a.end <= b.start or b.end <= a.start:
            assert overlap_minutes(a, b) == 0


def test_filter_applies_both_gates(make_opt_in, home_point):
    target = make_opt_in("RIDER", ("08:00", "08:30"), home_point)

    nearby_driver = make_opt_in("DRIVER", ("08:10", "08:40"), offset(home_point, north_km=1.5))
    short_overlap = make_opt_in("DRIVER", ("08:20", "09:00"), offset(home_point, north_km=0.5))  # 10 min
    too_far = make_opt_in("DRIVER", ("08:00", "08:30"), offset(home_point, east_km=16.0))
    exact_overlap = make_opt_in("RIDER", ("08:15", "09:00"), offset(home_point, east_km=2.0))  # 15 min

    eligible = filter_candidates(target, [nearby_driver, short_overlap, too_far, exact_overlap])

    assert [o.id for o in eligible] == [nearby_driver.id, exact_overlap.id]


def test_filter_drops_self_same_user_and_other_dates(make_opt_in, home_point):
    target = make_opt_in("RIDER", ("08:00", "08:30"), home_point)

    same_user = make_opt_in("DRIVER", ("08:00", "08:30"), home_point, user_id=target.user_id)
    other_day = make_opt_in("DRIVER", ("08:00", "08:30"), home_point)
    other_day.commute_date = date(2026, 10, 20)

    assert filter_candidates(target, [target, same_user, other_day]) == []


def test_filter_skips_malformed_entries(make_opt_in, home_point):
    """
    A broken opt-in in the pool is logged and skipped; the rest still match.
    """
    target = make_opt_in("RIDER", ("08:00", "09:00"), home_point)
    broken = make_opt_in("DRIVER", ("08:00", "09:00"), home_point)
    broken.time_window = TimeWindow(start=540, end=480)
    good = make_opt_in("DRIVER", ("08:00", "09:00"), offset(home_point, east_km=1.0))

    eligible = filter_candidates(target, [broken, good])

    assert [o.id for o in eligible] == [good.id]


def test_filter_never_returns_ineligible_candidates(make_opt_in, home_point):
    """
    Randomised pool: every survivor overlaps >= 15 min and sits <= 15 km away.
    """
    rng = random.Random(3)
    policy = MatchingPolicy()
    target = make_opt_in("RIDER", ("08:00", "09:00"), home_point)

    pool = []
    for _ in range(150):
        start = rng.randint(7 * 60, 9 * 60)
        length = rng.choice([10, 20, 30, 60])
        window = (f"{start // 60:02d}:{start % 60:02d}", f"{(start + length) // 60:02d}:{(start + length) % 60:02d}")
        point = offset(home_point, north_km=rng.uniform(-20, 20), east_km=rng.uniform(-20, 20))
        pool.append(make_opt_in(rng.choice(["DRIVER", "RIDER"]), window, point))

    eligible = filter_candidates(target, pool, policy)

    assert eligible
    for other in eligible:
        assert overlap_minutes(target.time_window, other.time_window) >= policy.min_overlap_minutes
        assert haversine_km(target.pickup, other.pickup) <= policy.max_candidate_distance_km


def test_driver_beyond_candidate_radius_is_dropped(make_opt_in, home_point):
    target = make_opt_in("RIDER", ("08:00", "08:30"), home_point)
    driver = make_opt_in("DRIVER", ("08:00", "08:30"), offset(home_point, north_km=16.0))

    assert filter_candidates(target, [driver]) == []
