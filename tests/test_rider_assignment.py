import threading
from datetime import timedelta

import pytest

from datastore import InMemoryStore, StoreError
from dispatch import RiderAssignmentService
from dispatch.dispatcher import subtract_month
from dispatch.models import AssignmentLog, AssignmentType, TimeRange
from orders.models import OrderStatus

from conftest import NOW, make_order, make_rider


@pytest.fixture
def service(store, clock):
    return RiderAssignmentService(store, clock=clock)


def test_assigns_best_rider_and_logs_it(store, service):
    store.add_order(make_order("o1"))
    for rider in (make_rider("near", 1.0), make_rider("mid", 3.0), make_rider("far", 6.0)):
        store.add_rider(rider)

    result = service.assign_rider_to_order("o1", "rest_1")

    assert result.success
    assert result.message == "Rider assigned automatically"
    assert result.assigned_rider_id == "near"
    assert [c.rider_id for c in result.candidate_riders] == ["near", "mid", "far"]

    order = store.get_order("o1")
    assert order.rider_id == "near"
    assert order.rider_assigned_at == NOW
    # the kitchen status is not touched by a claim
    assert order.status == OrderStatus.CONFIRMED

    assert len(store.assignment_logs) == 1
    log = store.assignment_logs[0]
    assert log.assignment_type == AssignmentType.AUTOMATIC
    assert log.assignment_score == pytest.approx(result.candidate_riders[0].score)


def test_unknown_restaurant(service):
    result = service.assign_rider_to_order("o1", "missing")

    assert not result.success
    assert result.message == "Restaurant location not found"
    assert result.fallback_to_manual


def test_no_riders_in_range(store, service):
    store.add_order(make_order("o1"))
    store.add_rider(make_rider("offline", 1.0, is_online=False))
    store.add_rider(make_rider("too_far", 25.0))

    result = service.assign_rider_to_order("o1", "rest_1")

    assert result.message == "No available riders in zone"
    assert result.fallback_to_manual
    assert result.candidate_riders == []


def test_riders_below_minimum_score(store, service):
    store.add_order(make_order("o1"))
    store.add_rider(make_rider("weak", 9.0))
    store.add_rating("weak", 1.0)
    for i in range(3):
        store.add_order(make_order(f"old_{i}", status=OrderStatus.CANCELLED, rider_id="weak", minutes_ago=600))

    result = service.assign_rider_to_order("o1", "rest_1")

    assert result.message == "No suitable riders found"
    assert store.get_order("o1").rider_id is None


def test_busy_rider_ranks_below_idle_rider(store, service):
    store.add_order(make_order("o1"))
    store.add_order(make_order("o_busy", status=OrderStatus.PICKED_UP, rider_id="busy"))
    store.add_rider(make_rider("busy", 1.0))
    store.add_rider(make_rider("idle", 2.0))

    result = service.assign_rider_to_order("o1", "rest_1")

    assert result.assigned_rider_id == "idle"
    busy = next(c for c in result.candidate_riders if c.rider_id == "busy")
    assert busy.active_orders == 1
    assert busy.factors.workload == pytest.approx(60)


def test_order_already_claimed_is_not_reassigned(store, service):
    store.add_order(make_order("o1", rider_id="someone_else"))
    store.add_rider(make_rider("near", 1.0))

    result = service.assign_rider_to_order("o1", "rest_1")

    assert not result.success
    assert result.message == "Automatic assignment failed, manual assignment required"
    assert [c.rider_id for c in result.candidate_riders] == ["near"]
    assert store.get_order("o1").rider_id == "someone_else"


class LosingRaceStore(InMemoryStore):
    """Another dispatcher grabs the order right before our claim lands."""

    def claim_order(self, order_id, rider_id, at):
        super().claim_order(order_id, "intruder", at)
        return super().claim_order(order_id, rider_id, at)


def test_lost_race_falls_back_to_manual(restaurant, clock):
    store = LosingRaceStore()
    store.add_restaurant(restaurant)
    store.add_order(make_order("o1"))
    store.add_rider(make_rider("near", 1.0))
    store.add_rider(make_rider("mid", 2.0))

    result = RiderAssignmentService(store, clock=clock).assign_rider_to_order("o1", "rest_1")

    assert not result.success
    assert result.fallback_to_manual
    assert store.get_order("o1").rider_id == "intruder"
    assert store.assignment_logs == []


class RefusingStore(InMemoryStore):
    """The claim for one specific rider is rejected."""

    def claim_order(self, order_id, rider_id, at):
        if rider_id == "near":
            return False
        return super().claim_order(order_id, rider_id, at)


def test_next_candidate_is_tried_after_a_failed_claim(restaurant, clock):
    store = RefusingStore()
    store.add_restaurant(restaurant)
    store.add_order(make_order("o1"))
    store.add_rider(make_rider("near", 1.0))
    store.add_rider(make_rider("mid", 2.0))

    result = RiderAssignmentService(store, clock=clock).assign_rider_to_order("o1", "rest_1")

    assert result.success
    assert result.assigned_rider_id == "mid"


class BrokenStore(InMemoryStore):
    def list_online_riders(self, zone_id=None):
        raise StoreError("connection reset")


def test_store_failure_is_reported_not_raised(restaurant, clock):
    store = BrokenStore()
    store.add_restaurant(restaurant)
    store.add_order(make_order("o1"))

    result = RiderAssignmentService(store, clock=clock).assign_rider_to_order("o1", "rest_1")

    assert not result.success
    assert result.message == "Assignment service error"
    assert result.fallback_to_manual


def test_concurrent_claims_have_a_single_winner(store):
    store.add_order(make_order("o1"))
    results = []
    barrier = threading.Barrier(10)

    def claim(rider_id):
        barrier.wait()
        results.append(store.claim_order("o1", rider_id, NOW))

    threads = [threading.Thread(target=claim, args=(f"rider_{i}",)) for i in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert store.get_order("o1").rider_id is not None


def test_concurrent_assignments_assign_once(store, service):
    store.add_order(make_order("o1"))
    for i in range(5):
        store.add_rider(make_rider(f"rider_{i}", 1.0 + i))
    results = []

    def assign():
        results.append(service.assign_rider_to_order("o1", "rest_1"))

    threads = [threading.Thread(target=assign) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for result in results if result.success) == 1
    assert len(store.assignment_logs) == 1


def test_manual_assignment(store, service):
    store.add_order(make_order("o1"))
    store.add_rider(make_rider("picked", 8.0))

    result = service.manual_assign_rider("o1", "picked", "admin_1")

    assert result.success
    assert result.message == "Rider assigned manually by admin"
    assert store.get_order("o1").rider_id == "picked"
    log = store.assignment_logs[0]
    assert log.assignment_type == AssignmentType.MANUAL
    assert log.assignment_score is None


def test_manual_assignment_of_offline_rider_fails(store, service):
    store.add_order(make_order("o1"))
    store.add_rider(make_rider("sleeping", 1.0, is_online=False))

    result = service.manual_assign_rider("o1", "sleeping", "admin_1")

    assert not result.success
    assert result.message == "Failed to assign rider manually"
    assert not result.fallback_to_manual
    assert store.get_order("o1").rider_id is None


def _log(rider_id, hours_ago, kind=AssignmentType.AUTOMATIC, score=80.0):
    return AssignmentLog(
        order_id=f"o_{rider_id}_{hours_ago}",
        rider_id=rider_id,
        assignment_type=kind,
        assigned_at=NOW - timedelta(hours=hours_ago),
        assignment_score=score if kind == AssignmentType.AUTOMATIC else None,
    )


def test_analytics_windows(store, service):
    store.log_assignment(_log("r1", 1))
    store.log_assignment(_log("r2", 3 * 24, kind=AssignmentType.MANUAL))
    store.log_assignment(_log("r1", 20 * 24))
    store.log_assignment(_log("r3", 40 * 24))

    day = service.assignment_analytics("day")
    week = service.assignment_analytics("week")
    month = service.assignment_analytics("month")

    assert (day.total_assignments, week.total_assignments, month.total_assignments) == (1, 2, 3)
    assert week.automatic_assignments == 1
    assert week.manual_assignments == 1
    assert month.top_riders[0].rider_id == "r1"
    assert month.top_riders[0].assignments == 2
    assert month.top_riders[0].average_score == pytest.approx(80)


def test_day_starts_at_local_midnight(service):
    # 09:00 UTC is 10:00 in Lagos, local midnight is 23:00 UTC the day before
    start = service.analytics_start(TimeRange.DAY, NOW)

    assert start == NOW - timedelta(hours=10)


def test_top_riders_limit_and_order(service):
    logs = [_log(f"r{i}", 1, score=50 + i) for i in range(8)] + [_log("r0", 2)]

    top = service.top_riders(logs)

    assert len(top) == 5
    assert top[0].rider_id == "r0"
    assert [t.rider_id for t in top[1:3]] == ["r7", "r6"]


def test_subtract_month_clamps_day():
    march_31 = NOW.replace(month=3, day=31)

    assert subtract_month(march_31).day == 29
    assert subtract_month(NOW.replace(month=1)).year == NOW.year - 1


def test_unknown_time_range_is_rejected(service):
    with pytest.raises(ValueError):
        service.assignment_analytics("year")


class CountingStore(InMemoryStore):
    def __init__(self):
        super().__init__()
        self.batch_counts = []
        self.single_counts = 0

    def count_active_orders_by_rider(self, rider_ids):
        self.batch_counts.append(list(rider_ids))
        return super().count_active_orders_by_rider(rider_ids)

    def count_active_rider_orders(self, rider_id):
        self.single_counts += 1
        return super().count_active_rider_orders(rider_id)


def test_ranking_counts_orders_for_nearby_riders_only(restaurant, clock):
    store = CountingStore()
    store.add_restaurant(restaurant)
    store.add_rider(make_rider("near", 1.0))
    for i in range(200):
        store.add_rider(make_rider(f"away_{i}", 500.0))

    ranked = RiderAssignmentService(store, clock=clock).rank_riders(restaurant.location)

    assert [score.rider_id for score in ranked] == ["near"]
    assert store.batch_counts == [["near"]]
    assert store.single_counts == 0
