"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Accepts a confirmed order, finds riders around its restaurant, scores and
ranks them, then tries to claim the order for the best few in turn. The
claim is a conditional update in the store, so two concurrent attempts can
never both win. Whatever happens, the caller gets a result it can show an
admin, with the ranked candidates for manual assignment.
"""

import calendar
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from orders.models import OrderStatus, utcnow
from riders.models import RiderStatus, RiderScore
from riders.policy import AssignmentPolicy, default_assignment_policy
from riders.selection import (
    filter_available_riders,
    has_spare_capacity,
    performance_from_orders,
    performance_window_start,
    rank_scores,
    rating_from_scores,
    score_candidate,
)
from .models import AssignmentAnalytics, AssignmentLog, AssignmentResult, AssignmentType, TimeRange, TopRider

logger = logging.getLogger(__name__)


def subtract_month(moment: datetime) -> datetime:
    """Same day last month, clamped to that month's length."""
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class RiderAssignmentService:
    """
    Coordinates assigning an order to a rider, automatically or by an admin.
    """
    def __init__(
        self,
        store: Any,
        policy: Optional[AssignmentPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.policy = policy or default_assignment_policy()
        self.clock = clock or utcnow

    #----------------
    # Automatic assignment
    #----------------
    def assign_rider_to_order(self, order_id: str, restaurant_id: str) -> AssignmentResult:
        try:
            logger.debug("Starting rider assignment for order %s (restaurant %s)", order_id, restaurant_id)

            restaurant = self.store.get_restaurant(restaurant_id)
            if restaurant is None or restaurant.location is None:
                logger.error("Restaurant location not found for %s", restaurant_id)
                return AssignmentResult.failure("Restaurant location not found")

            ranked = self.rank_riders(restaurant.location)
            if ranked is None:
                return AssignmentResult.failure("No available riders in zone")
            if not ranked:
                return AssignmentResult.failure("No suitable riders found")

            for candidate in ranked[: self.policy.max_attempts]:
                if self._attempt_assignment(order_id, candidate.rider_id):
                    self._log_assignment(order_id, candidate.rider_id, AssignmentType.AUTOMATIC, candidate.score)
                    logger.info(
                        "Order %s assigned automatically to rider %s (score %.1f)",
                        order_id, candidate.rider_id, candidate.score,
                    )
                    return AssignmentResult(
                        success=True,
                        message="Rider assigned automatically",
                        assigned_rider_id=candidate.rider_id,
                        candidate_riders=ranked,
                    )

            return AssignmentResult.failure(
                "Automatic assignment failed, manual assignment required", candidates=ranked
            )
        except Exception:
            logger.exception("Rider assignment failed for order %s (restaurant %s)", order_id, restaurant_id)
            return AssignmentResult.failure("Assignment service error")

    def rank_riders(self, restaurant_location) -> Optional[List[RiderScore]]:
        """
        Scored, filtered and sorted candidates around a restaurant.
        None means nobody passed the eligibility gates at all.
        """
        riders = self.store.list_online_riders()
        candidates = filter_available_riders(
            restaurant_location, riders, self.store.count_active_orders_by_rider, self.policy
        )
        logger.debug("Found %d available riders within %.1f km", len(candidates), self.policy.max_distance_km)
        if not candidates:
            return None

        since = performance_window_start(self.clock(), self.policy)
        scores = []
        for candidate in candidates:
            rider_id = candidate.rider.id
            try:
                performance = performance_from_orders(self.store.list_rider_orders(rider_id, since=since), self.policy)
                rating = rating_from_scores(self.store.list_rider_ratings(rider_id), self.policy)
            except Exception:
                # one unreadable rider should not sink the whole assignment
                logger.warning("Could not score rider %s, skipping", rider_id, exc_info=True)
                continue
            scores.append(score_candidate(candidate, performance, rating, self.policy))

        return rank_scores(scores, self.policy)

    def _attempt_assignment(self, order_id: str, rider_id: str) -> bool:
        """
        Re-check the order and the rider, then claim. The store's conditional
        update is the only thing that guarantees a single winner; the checks
        just avoid pointless writes.
        """
        try:
            order = self.store.get_order(order_id)
            if order is None:
                logger.error("Order %s not found during assignment", order_id)
                return False

            if order.status != OrderStatus.CONFIRMED or order.rider_id:
                logger.warning(
                    "Order %s no longer available for assignment (status=%s, rider=%s)",
                    order_id, order.status.value, order.rider_id,
                )
                return False

            if not self._rider_still_available(rider_id):
                logger.warning("Rider %s no longer available", rider_id)
                return False

            claimed = self.store.claim_order(order_id, rider_id, self.clock())
            if not claimed:
                logger.warning("Order %s was claimed concurrently; rider %s lost the race", order_id, rider_id)
            return claimed
        except Exception:
            logger.exception("Assignment attempt failed for order %s rider %s", order_id, rider_id)
            return False

    def _rider_still_available(self, rider_id: str) -> bool:
        rider = self.store.get_rider(rider_id)
        if rider is None or not rider.is_online or rider.status != RiderStatus.ACTIVE:
            return False
        return has_spare_capacity(rider, self.store.count_active_rider_orders(rider_id), self.policy)

    def _log_assignment(self, order_id: str, rider_id: str, kind: AssignmentType, score: Optional[float]) -> None:
        # the rider already has the order; losing the log line is not worth failing over
        try:
            self.store.log_assignment(
                AssignmentLog(
                    order_id=order_id,
                    rider_id=rider_id,
                    assignment_type=kind,
                    assigned_at=self.clock(),
                    assignment_score=score,
                )
            )
        except Exception:
            logger.exception("Failed to log %s assignment of order %s to rider %s", kind.value, order_id, rider_id)

    #----------------
    # Manual assignment
    #----------------
    def manual_assign_rider(self, order_id: str, rider_id: str, admin_id: str) -> AssignmentResult:
        try:
            if self._attempt_assignment(order_id, rider_id):
                self._log_assignment(order_id, rider_id, AssignmentType.MANUAL, None)
                logger.info("Order %s assigned manually to rider %s by admin %s", order_id, rider_id, admin_id)
                return AssignmentResult(
                    success=True,
                    message="Rider assigned manually by admin",
                    assigned_rider_id=rider_id,
                )
            return AssignmentResult.failure("Failed to assign rider manually", fallback_to_manual=False)
        except Exception:
            logger.exception("Manual assignment failed for order %s rider %s", order_id, rider_id)
            return AssignmentResult.failure("Manual assignment failed", fallback_to_manual=False)

    #----------------
    # Analytics
    #----------------
    def analytics_start(self, time_range: TimeRange, now: Optional[datetime] = None) -> datetime:
        now = now or self.clock()
        if time_range == TimeRange.WEEK:
            return now - timedelta(days=7)
        if time_range == TimeRange.MONTH:
            return subtract_month(now)
        local_tz = timezone(timedelta(hours=self.policy.utc_offset_hours))
        return now.astimezone(local_tz).replace(hour=0, minute=0, second=0, microsecond=0)

    def assignment_analytics(self, time_range: str = TimeRange.DAY) -> AssignmentAnalytics:
        time_range = TimeRange(time_range)
        try:
            logs = self.store.list_assignment_logs(self.analytics_start(time_range))
        except Exception:
            logger.exception("Could not load assignment analytics for %s", time_range.value)
            return AssignmentAnalytics(time_range=time_range)

        automatic = sum(1 for log in logs if log.assignment_type == AssignmentType.AUTOMATIC)
        return AssignmentAnalytics(
            time_range=time_range,
            total_assignments=len(logs),
            automatic_assignments=automatic,
            manual_assignments=len(logs) - automatic,
            top_riders=self.top_riders(logs),
        )

    def top_riders(self, logs: List[AssignmentLog]) -> List[TopRider]:
        assignments: Dict[str, int] = defaultdict(int)
        scores: Dict[str, List[float]] = defaultdict(list)
        for log in logs:
            assignments[log.rider_id] += 1
            if log.assignment_score is not None:
                scores[log.rider_id].append(log.assignment_score)

        top = [
            TopRider(
                rider_id=rider_id,
                assignments=count,
                average_score=sum(scores[rider_id]) / len(scores[rider_id]) if scores[rider_id] else None,
            )
            for rider_id, count in assignments.items()
        ]
        top.sort(key=lambda t: (-t.assignments, -(t.average_score or 0), t.rider_id))
        return top[: self.policy.top_riders_limit]
