from datetime import timedelta
from itertools import permutations

import pytest

from matching.models import MatchCandidate
from matching.scoring import score_group
from optins.models import OptInStatus
from rides.lifecycle import RideLifecycleManager
from rides.models import EventType, ParticipantStatus, RideStatus
from rides.state_machines import DECLINED_REASON, ParticipantStateException, RideStateException
from rides.store import InMemoryDatastore, PersistenceError
from routing.optimizer import RouteOptimizer
from routing.providers import Waypoint

from helpers import RecordingNotifier, offset


def build_candidate(driver, riders, destination, now):
    scored = score_group([driver] + riders, destination)
    route = RouteOptimizer().optimize(
        driver.pickup,
        destination,
        [Waypoint(r.id, r.user_id, r.pickup, r.pickup_location.id) for r in riders],
        driver_user_id=driver.user_id,
        now=now,
    )
    return MatchCandidate(
        participants=[driver] + riders,
        confidence=scored.score,
        route=route,
        reasoning=scored.reasoning,
        metrics=scored.metrics,
    )


@pytest.fixture
def trio(make_opt_in, home_point):
    driver = make_opt_in("DRIVER", ("07:30", "09:00"), home_point, capacity=3)
    riders = [
        make_opt_in("RIDER", ("07:30", "09:00"), offset(home_point, east_km=0.6)),
        make_opt_in("RIDER", ("07:45", "09:00"), offset(home_point, north_km=0.8)),
    ]
    return driver, riders


@pytest.fixture
def candidate(trio, campus, now):
    driver, riders = trio
    return build_candidate(driver, riders, campus, now)


def _fresh(trio, candidate, commute_date, now, notifier=None):
    driver, riders = trio
    store = InMemoryDatastore()
    store.add_opt_ins([driver] + riders)
    notifier = notifier or RecordingNotifier()
    manager = RideLifecycleManager(store, notifier)
    creation = manager.create_ride(candidate, commute_date, now)
    return store, notifier, manager, creation.ride


def test_create_ride_persists_proposal(trio, candidate, commute_date, now):
    store, notifier, _, ride = _fresh(trio, candidate, commute_date, now)
    driver, riders = trio

    assert ride.status == RideStatus.PROPOSED
    assert ride.driver_id == driver.user_id
    assert ride.pickup_order[0] == driver.user_id
    assert sorted(ride.pickup_order[1:]) == sorted(r.user_id for r in riders)
    assert ride.confidence == candidate.confidence
    assert ride.cost_per_person == candidate.route.cost_per_person

    participants = store.list_participants(ride.id)
    assert len(participants) == 3
    for participant in participants:
        assert participant.status == ParticipantStatus.PENDING_ACCEPTANCE
        assert participant.confirmation_deadline == now + timedelta(hours=24)

    for opt_in in [driver] + riders:
        assert store.get_opt_in(opt_in.id).status == OptInStatus.MATCHED

    assert notifier.events == [(ride.id, EventType.MATCH, None)]


def test_participant_failure_rolls_back_ride(trio, candidate, store, notifier, commute_date, now):
    """
    Participants fail after the ride row was written: the ride must be gone
    and every opt-in must still be PENDING.
    """
    driver, riders = trio
    store.add_opt_ins([driver] + riders)
    store.fail_participant_inserts = True
    manager = RideLifecycleManager(store, notifier)

    with pytest.raises(PersistenceError, match="Failed to create ride participants"):
        manager.create_ride(candidate, commute_date, now)

    assert store.list_rides_for_user(driver.user_id) == []
    for opt_in in [driver] + riders:
        assert store.get_opt_in(opt_in.id).status == OptInStatus.PENDING
    assert notifier.events == []


def test_rolled_back_ride_is_not_found(trio, candidate, store, commute_date, now):
    driver, riders = trio
    store.add_opt_ins([driver] + riders)
    inserted = []
    original_insert = store.insert_ride

    def spy_insert(ride):
        inserted.append(ride.id)
        return original_insert(ride)

    store.insert_ride = spy_insert
    store.fail_participant_inserts = True

    with pytest.raises(PersistenceError):
        RideLifecycleManager(store).create_ride(candidate, commute_date, now)

    assert len(inserted) == 1
    assert store.get_ride(inserted[0]) is None


def test_ride_insert_failure_leaves_nothing_behind(trio, candidate, store, commute_date, now):
    driver, riders = trio
    store.add_opt_ins([driver] + riders)
    store.fail_ride_inserts = True

    with pytest.raises(PersistenceError):
        RideLifecycleManager(store).create_ride(candidate, commute_date, now)

    assert store.list_rides_for_user(driver.user_id) == []
    assert store.get_opt_in(driver.id).status == OptInStatus.PENDING


def test_opt_in_update_failure_keeps_the_ride(trio, candidate, store, commute_date, now):
    driver, riders = trio
    store.add_opt_ins([driver] + riders)
    store.fail_opt_in_updates = True

    creation = RideLifecycleManager(store).create_ride(candidate, commute_date, now)

    assert store.get_ride(creation.ride.id) is not None
    assert len(store.list_participants(creation.ride.id)) == 3
    assert any("opt-in status update failed" in e for e in creation.errors)


def test_ride_confirms_only_when_everyone_confirms(trio, candidate, commute_date, now):
    """
    Every confirmation order ends in CONFIRMED, and never before the last one.
    """
    driver, riders = trio
    users = [driver.user_id] + [r.user_id for r in riders]

    for order in permutations(users):
        store, notifier, manager, ride = _fresh(trio, candidate, commute_date, now)

        for i, user_id in enumerate(order):
            update = manager.confirm(ride.id, user_id, now + timedelta(minutes=i + 1))
            expected = RideStatus.CONFIRMED if i == len(order) - 1 else RideStatus.PROPOSED
            assert update.ride.status == expected

        assert store.get_ride(ride.id).status == RideStatus.CONFIRMED
        assert notifier.events[-1] == (ride.id, EventType.CONFIRMATION, None)


def test_any_decline_cancels_immediately(trio, candidate, commute_date, now):
    driver, riders = trio
    users = [driver.user_id] + [r.user_id for r in riders]

    for decliner in users:
        store, notifier, manager, ride = _fresh(trio, candidate, commute_date, now)
        others = [u for u in users if u != decliner]

        manager.confirm(ride.id, others[0], now)
        update = manager.decline(ride.id, decliner, now)

        assert update.ride.status == RideStatus.CANCELLED
        assert update.ride.cancellation_reason == DECLINED_REASON
        assert notifier.events[-1] == (ride.id, EventType.CANCELLATION, DECLINED_REASON)

        # The last participant never answered and can no longer do so.
        with pytest.raises(RideStateException):
            manager.confirm(ride.id, others[1], now)


def test_repeated_answer_is_a_no_op_but_changing_it_is_not_allowed(trio, candidate, commute_date, now):
    driver, _ = trio
    _, _, manager, ride = _fresh(trio, candidate, commute_date, now)

    manager.confirm(ride.id, driver.user_id, now)
    update = manager.confirm(ride.id, driver.user_id, now)
    assert update.ride.status == RideStatus.PROPOSED

    with pytest.raises(ParticipantStateException):
        manager.decline(ride.id, driver.user_id, now)


def test_notification_failure_does_not_undo_transition(trio, candidate, commute_date, now):
    driver, riders = trio
    failing = RecordingNotifier(fail=True)
    store, _, manager, ride = _fresh(trio, candidate, commute_date, now, notifier=failing)

    for user_id in [driver.user_id] + [r.user_id for r in riders]:
        update = manager.confirm(ride.id, user_id, now)

    assert update.ride.status == RideStatus.CONFIRMED
    assert store.get_ride(ride.id).status == RideStatus.CONFIRMED
    assert update.errors and "CONFIRMATION notification failed" in update.errors[0]
    assert [event for _, event, _ in failing.events] == [EventType.MATCH, EventType.CONFIRMATION]


def test_expire_overdue_marks_no_response(trio, candidate, commute_date, now):
    driver, riders = trio
    store, _, manager, ride = _fresh(trio, candidate, commute_date, now)

    manager.confirm(ride.id, driver.user_id, now)

    before = manager.expire_overdue(ride.id, now + timedelta(hours=23))
    assert before.changed_participants == []

    after = manager.expire_overdue(ride.id, now + timedelta(hours=24))
    assert sorted(p.user_id for p in after.changed_participants) == sorted(r.user_id for r in riders)
    assert after.ride.status == RideStatus.PROPOSED

    statuses = {p.user_id: p.status for p in store.list_participants(ride.id)}
    assert statuses[driver.user_id] == ParticipantStatus.CONFIRMED
    assert statuses[riders[0].user_id] == ParticipantStatus.NO_RESPONSE

    with pytest.raises(ParticipantStateException):
        manager.confirm(ride.id, riders[0].user_id, now + timedelta(hours=25))


def test_respond_validates_input(trio, candidate, commute_date, now):
    driver, _ = trio
    _, _, manager, ride = _fresh(trio, candidate, commute_date, now)

    with pytest.raises(ValueError):
        manager.respond(ride.id, driver.user_id, ParticipantStatus.NO_RESPONSE, now)
    with pytest.raises(LookupError):
        manager.confirm("no-such-ride", driver.user_id, now)
    with pytest.raises(LookupError):
        manager.confirm(ride.id, "stranger", now)


def test_rides_for_user(trio, candidate, commute_date, now):
    driver, riders = trio
    _, _, manager, ride = _fresh(trio, candidate, commute_date, now)

    assert [r.id for r in manager.rides_for_user(riders[0].user_id)] == [ride.id]
    assert manager.rides_for_user(driver.user_id, RideStatus.CONFIRMED) == []
    assert manager.rides_for_user("stranger") == []


class DroppedConnectionStore(InMemoryDatastore):
    """Backend that raises its own driver errors instead of PersistenceError."""

    def insert_participants(self, participants):
        raise ConnectionError("connection reset")


def test_backend_error_on_participants_still_rolls_back(trio, candidate, commute_date, now):
    driver, riders = trio
    store = DroppedConnectionStore()
    store.add_opt_ins([driver] + riders)
    notifier = RecordingNotifier()

    with pytest.raises(PersistenceError, match="connection reset"):
        RideLifecycleManager(store, notifier).create_ride(candidate, commute_date, now)

    assert store.list_rides_for_user(driver.user_id) == []
    assert store._rides == {}
    for opt_in in [driver] + riders:
        assert store.get_opt_in(opt_in.id).status == OptInStatus.PENDING
    assert notifier.events == []


def test_backend_error_on_ride_insert_is_reported_as_persistence_error(trio, candidate, commute_date, now):
    driver, riders = trio

    class RideTableDown(InMemoryDatastore):
        def insert_ride(self, ride):
            raise TimeoutError("statement timeout")

    store = RideTableDown()
    store.add_opt_ins([driver] + riders)

    with pytest.raises(PersistenceError, match="statement timeout"):
        RideLifecycleManager(store).create_ride(candidate, commute_date, now)

    assert store._rides == {}
