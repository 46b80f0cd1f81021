import random

import pytest

from orders.models import OrderStatus
from riders.models import Rider, RiderPerformance, RiderRating, RiderStatus
from riders.policy import AssignmentPolicy, default_assignment_policy
from riders.selection import (
    RiderCandidate,
    filter_available_riders,
    performance_from_orders,
    rank_scores,
    rating_from_scores,
    score_candidate,
)
from routing.geofence import geofence_candidates, haversine_km

from conftest import NOW, RESTAURANT_LOCATION, make_order, make_rider


@pytest.fixture
def defaults():
    return (
        RiderPerformance(completion_rate=80.0, average_delivery_minutes=30.0),
        RiderRating(average=4.5),
    )


def test_haversine_matches_known_distance():
    # Lagos Island -> Ikeja, roughly 16 km as the crow flies
    distance = haversine_km((6.4550, 3.3841), (6.6018, 3.3515))
    assert 15.5 < distance < 17.5
    assert haversine_km(RESTAURANT_LOCATION, RESTAURANT_LOCATION) == 0


def test_geofence_fails_closed_and_sorts_by_distance():
    items = {"far": (6.60, 3.38), "unknown": None, "near": (6.53, 3.38)}

    candidates = geofence_candidates(RESTAURANT_LOCATION, list(items), items.get, max_distance_km=20)

    # 1. An item without a position is never eligible
    assert [c.item for c in candidates] == ["near", "far"]
    # 2. Closest first
    assert candidates[0].distance_km < candidates[1].distance_km


def test_filter_available_riders_distribution():
    """
    Randomly scattered riders: only online, active, in-range riders with
    spare capacity make it through.
    """
    riders = []
    for i in range(100):
        km = random.uniform(0, 15)
        status = RiderStatus.ACTIVE if i % 10 != 0 else RiderStatus.SUSPENDED
        riders.append(make_rider(f"rider_{i}", km, is_online=i % 7 != 0, status=status))

    candidates = filter_available_riders(RESTAURANT_LOCATION, riders, lambda rider_ids: {})

    # 1. No offline or suspended rider made it through
    for candidate in candidates:
        assert candidate.rider.is_online
        assert candidate.rider.status == RiderStatus.ACTIVE

    # 2. Radius strictly enforced
    for candidate in candidates:
        assert candidate.distance_km <= 10

    # 3. Sorted closest first
    distances = [c.distance_km for c in candidates]
    assert distances == sorted(distances)


def test_filter_drops_riders_at_capacity_and_without_location():
    riders = [
        make_rider("free", 1.0),
        make_rider("full", 1.0, max_concurrent_orders=2),
        make_rider("far", 12.0),
    ]
    riders.append(Rider.new("lost", None, None))

    candidates = filter_available_riders(RESTAURANT_LOCATION, riders, lambda rider_ids: {"full": 2, "free": 1})

    assert [c.rider.id for c in candidates] == ["free"]
    assert candidates[0].active_orders == 1


def test_score_for_idle_rider_with_defaults(defaults):
    performance, rating = defaults
    candidate = RiderCandidate(rider=make_rider("r1", 2.0), distance_km=2.0, active_orders=0)

    score = score_candidate(candidate, performance, rating)

    assert score.factors.proximity == pytest.approx(80)
    assert score.factors.availability == pytest.approx(100)
    assert score.factors.performance == pytest.approx(80)
    assert score.factors.workload == pytest.approx(100)
    assert score.factors.rating == pytest.approx(90)
    # 80*.3 + 100*.25 + 80*.2 + 100*.15 + 90*.1
    assert score.score == pytest.approx(89)


def test_score_penalises_workload_and_slow_deliveries():
    candidate = RiderCandidate(rider=make_rider("r1", 2.0), distance_km=2.0, active_orders=1)
    slow = RiderPerformance(completion_rate=90.0, average_delivery_minutes=45.0)

    score = score_candidate(candidate, slow, RiderRating(average=4.5))

    assert score.factors.availability == pytest.approx(70)
    assert score.factors.workload == pytest.approx(60)
    assert score.factors.performance == pytest.approx(70)
    assert score.score == pytest.approx(80 * .3 + 70 * .25 + 70 * .2 + 60 * .15 + 90 * .1)


def test_sub_scores_never_go_negative(defaults):
    performance, rating = defaults
    candidate = RiderCandidate(rider=make_rider("r1", 14.0), distance_km=14.0, active_orders=4)

    score = score_candidate(candidate, RiderPerformance(10.0, 60.0), rating)

    assert score.factors.proximity == 0
    assert score.factors.availability == 0
    assert score.factors.workload == 0
    assert score.factors.performance == 0


def test_offline_rider_gets_no_availability_points(defaults):
    performance, rating = defaults
    candidate = RiderCandidate(rider=make_rider("r1", 1.0, is_online=False), distance_km=1.0, active_orders=0)

    assert score_candidate(candidate, performance, rating).factors.availability == 0


def test_rank_drops_low_scores_and_breaks_ties(defaults):
    performance, rating = defaults
    scores = [
        score_candidate(RiderCandidate(make_rider(rid, km), km, 0), performance, rating)
        for rid, km in (("b", 2.0), ("a", 2.0), ("close", 1.0))
    ]
    weak = score_candidate(RiderCandidate(make_rider("weak", 9.0), 9.0, 1), RiderPerformance(10, 60), RiderRating(1))
    assert weak.score <= 50

    ranked = rank_scores(scores + [weak])

    # 1. Only riders strictly above the minimum score
    assert "weak" not in [s.rider_id for s in ranked]
    # 2. Best first; equal scores fall back to distance then id
    assert [s.rider_id for s in ranked] == ["close", "a", "b"]


def test_score_exactly_at_minimum_is_discarded(defaults):
    performance, rating = defaults
    score = score_candidate(RiderCandidate(make_rider("r", 1.0), 1.0, 0), performance, rating)

    ranked = rank_scores([score], AssignmentPolicy(min_score=score.score))

    assert ranked == []


def test_performance_defaults_without_history():
    performance = performance_from_orders([])

    assert performance.completion_rate == 80
    assert performance.average_delivery_minutes == 30
    assert performance.total_deliveries == 0


def test_performance_from_history():
    from datetime import timedelta

    delivered = make_order("o1", status=OrderStatus.DELIVERED, rider_id="r1")
    delivered.rider_assigned_at = NOW - timedelta(minutes=50)
    delivered.delivered_at = NOW - timedelta(minutes=10)
    cancelled = make_order("o2", status=OrderStatus.CANCELLED, rider_id="r1")

    performance = performance_from_orders([delivered, cancelled])

    assert performance.completion_rate == pytest.approx(50)
    assert performance.average_delivery_minutes == pytest.approx(40)
    assert performance.total_deliveries == 1


def test_rating_defaults_for_new_riders():
    assert rating_from_scores([]).average == 4.5
    assert rating_from_scores([5, 4, 3]).average == pytest.approx(4)


def test_policy_weights_must_sum_to_one():
    default_assignment_policy()

    with pytest.raises(ValueError):
        AssignmentPolicy(rating_weight=0.2).validate()


def test_order_counts_are_only_asked_for_riders_in_range():
    riders = [make_rider("near", 1.0), make_rider("far", 500.0), make_rider("offline", 1.0, is_online=False)]
    asked = []

    def count_active_orders(rider_ids):
        asked.append(list(rider_ids))
        return {}

    candidates = filter_available_riders(RESTAURANT_LOCATION, riders, count_active_orders)

    assert [c.rider.id for c in candidates] == ["near"]
    assert asked == [["near"]]


def test_nobody_in_range_means_no_count_query():
    def count_active_orders(rider_ids):
        raise AssertionError("should not be called")

    assert filter_available_riders(RESTAURANT_LOCATION, [make_rider("far", 500.0)], count_active_orders) == []
