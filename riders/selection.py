"""
Purpose: Business rules and distance math for choosing the best rider.
What it does:
Accepts a restaurant location and a pool of riders, filters out ineligible
riders, scores the remaining ones on five weighted factors and ranks them.

Rule: No queries here. Callers fetch riders, order counts, performance and
ratings and pass them in.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from orders.models import Order, OrderStatus
from routing.geofence import geofence_candidates
from .models import Rider, RiderPerformance, RiderRating, RiderScore, ScoreFactors
from .policy import AssignmentPolicy, default_assignment_policy


@dataclass(frozen=True)
class RiderCandidate:
    """
    A rider who passed the hard eligibility gates, with the inputs the
    scorer needs about them.
    """
    rider: Rider
    distance_km: float
    active_orders: int


def max_orders_for(rider: Rider, policy: AssignmentPolicy) -> int:
    return rider.max_concurrent_orders or policy.default_max_concurrent_orders


def has_spare_capacity(rider: Rider, active_orders: int, policy: AssignmentPolicy) -> bool:
    return active_orders < max_orders_for(rider, policy)


def filter_available_riders(
    restaurant_location: Tuple[float, float],
    riders: Iterable[Rider],
    count_active_orders: Callable[[Sequence[str]], Mapping[str, int]],
    policy: Optional[AssignmentPolicy] = None,
) -> List[RiderCandidate]:
    """
    Returns only riders who are online, active, located within the geofence
    radius and below their concurrent order limit. Closest first.

    count_active_orders is called once, with the ids of the in-range riders
    only, and answers {rider_id: active order count}.
    """
    policy = policy or default_assignment_policy()

    dispatchable = [rider for rider in riders if rider.is_dispatchable]
    in_range = geofence_candidates(
        restaurant_location,
        dispatchable,
        lambda rider: rider.location,
        max_distance_km=policy.max_distance_km,
    )

    if not in_range:
        return []
    counts = count_active_orders([candidate.item.id for candidate in in_range])

    eligible = []
    for candidate in in_range:
        active_orders = counts.get(candidate.item.id, 0)
        if not has_spare_capacity(candidate.item, active_orders, policy):
            continue
        eligible.append(
            RiderCandidate(rider=candidate.item, distance_km=candidate.distance_km, active_orders=active_orders)
        )

    return eligible


def performance_from_orders(
    orders: Sequence[Order],
    policy: Optional[AssignmentPolicy] = None,
) -> RiderPerformance:
    """
    Completion rate and average assigned-to-delivered time over a rider's
    recent orders. Riders with no history get the policy defaults.
    """
    policy = policy or default_assignment_policy()

    if not orders:
        return RiderPerformance(
            completion_rate=policy.default_completion_rate,
            average_delivery_minutes=policy.default_delivery_minutes,
            total_deliveries=0,
        )

    delivered = [order for order in orders if order.status == OrderStatus.DELIVERED]
    completion_rate = len(delivered) / len(orders) * 100

    timed = [
        order for order in delivered
        if order.delivered_at is not None and order.rider_assigned_at is not None
    ]
    average_delivery_minutes = policy.default_delivery_minutes
    if timed:
        total_seconds = sum((order.delivered_at - order.rider_assigned_at).total_seconds() for order in timed)
        average_delivery_minutes = total_seconds / len(timed) / 60

    return RiderPerformance(
        completion_rate=completion_rate,
        average_delivery_minutes=average_delivery_minutes,
        total_deliveries=len(delivered),
    )


def rating_from_scores(
    ratings: Sequence[float],
    policy: Optional[AssignmentPolicy] = None,
) -> RiderRating:
    policy = policy or default_assignment_policy()
    if not ratings:
        # new riders start with a good rating
        return RiderRating(average=policy.default_rating, count=0)
    return RiderRating(average=sum(ratings) / len(ratings), count=len(ratings))


def score_candidate(
    candidate: RiderCandidate,
    performance: RiderPerformance,
    rating: RiderRating,
    policy: Optional[AssignmentPolicy] = None,
) -> RiderScore:
    """
    Weighted linear score: proximity, availability, performance, workload, rating.
    """
    policy = policy or default_assignment_policy()
    rider = candidate.rider
    active_orders = candidate.active_orders

    proximity = max(0.0, 100 - candidate.distance_km * policy.proximity_points_per_km)

    availability = 0.0
    if rider.is_online:
        availability = max(0.0, 100 - active_orders * policy.availability_penalty_per_order)

    if performance.average_delivery_minutes <= policy.slow_delivery_minutes:
        performance_score = min(100.0, performance.completion_rate)
    else:
        performance_score = max(0.0, performance.completion_rate - policy.slow_delivery_penalty)

    workload = max(0.0, 100 - active_orders * policy.workload_penalty_per_order)

    rating_score = rating.average / policy.rating_scale * 100

    total = (
        proximity * policy.proximity_weight
        + availability * policy.availability_weight
        + performance_score * policy.performance_weight
        + workload * policy.workload_weight
        + rating_score * policy.rating_weight
    )

    return RiderScore(
        rider_id=rider.id,
        score=total,
        factors=ScoreFactors(
            proximity=proximity,
            availability=availability,
            performance=performance_score,
            workload=workload,
            rating=rating_score,
        ),
        distance_km=candidate.distance_km,
        active_orders=active_orders,
    )


def rank_scores(
    scores: Iterable[RiderScore],
    policy: Optional[AssignmentPolicy] = None,
) -> List[RiderScore]:
    """
    Drop riders at or below the minimum score and order the rest best-first.
    Ties are broken by distance, then rider id, so the order is deterministic.
    """
    policy = policy or default_assignment_policy()
    qualified = [score for score in scores if score.score > policy.min_score]
    qualified.sort(key=lambda s: (-s.score, s.distance_km, s.rider_id))
    return qualified


def performance_window_start(now: datetime, policy: AssignmentPolicy) -> datetime:
    return now - timedelta(days=policy.performance_window_days)
