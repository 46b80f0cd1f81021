"""
Purpose: Restaurant capacity flags (Available / Busy / Closed).
What it does:
- Recomputes a restaurant's capacity record from its live orders and
  resolves the status (manual override first, thresholds otherwise).
- Lets admins set a time-boxed manual status and tune thresholds.
- Answers "can this restaurant take another order?" for checkout.
- Keeps an hourly history per (hour, weekday) and predicts busy periods.
- Broadcasts every status change on `restaurant:<id>`.

Rule: Capacity records are a cache. Every method catches store failures,
logs them and returns a neutral answer (None / False / empty).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from orders.models import KITCHEN_ACTIVE_STATUSES, OrderStatus, utcnow
from .history import predict_busy_periods, update_slot
from .models import (
    AcceptanceDecision,
    BusyPeriod,
    CapacityEventType,
    CapacityOverview,
    CapacityRecord,
    CapacityStatus,
    RestaurantAvailability,
)
from .policy import CapacityPolicy, default_capacity_policy

logger = logging.getLogger(__name__)


def resolve_capacity_status(record: CapacityRecord, active_orders: int, now: datetime) -> CapacityStatus:
    """
    A manual status with an expiry in the future wins. Anything else
    (expired, or missing an expiry) is cleared from the record and the
    busy threshold decides.
    """
    if record.override_active(now):
        return record.manual_status

    if record.manual_status is not None or record.manual_status_expiry is not None:
        record.clear_override()

    if active_orders >= record.busy_threshold:
        return CapacityStatus.BUSY
    return CapacityStatus.AVAILABLE


def average_fulfilment_minutes(orders, default: float) -> float:
    """Mean created -> delivered time of the given orders, in minutes."""
    durations = [
        (order.delivered_at - order.created_at).total_seconds() / 60
        for order in orders
        if order.delivered_at is not None
    ]
    if not durations:
        return default
    return sum(durations) / len(durations)


class CapacityService:
    """
    Capacity flags over an injected store, optionally broadcasting changes.
    """
    def __init__(
        self,
        store: Any,
        broadcaster: Any = None,
        policy: Optional[CapacityPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.policy = policy or default_capacity_policy()
        self.clock = clock or utcnow

    def local_now(self) -> datetime:
        return self.clock().astimezone(timezone(timedelta(hours=self.policy.utc_offset_hours)))

    def new_record(self, restaurant_id: str) -> CapacityRecord:
        return CapacityRecord(
            restaurant_id=restaurant_id,
            average_prep_time=self.policy.default_average_prep_time,
            busy_threshold=self.policy.default_busy_threshold,
            auto_reject_threshold=self.policy.default_auto_reject_threshold,
            updated_at=self.clock(),
        )

    def _get_or_create(self, restaurant_id: str) -> CapacityRecord:
        record = self.store.get_capacity(restaurant_id)
        if record is None:
            record = self.store.insert_capacity(self.new_record(restaurant_id))
            logger.debug("Capacity record created for restaurant %s", restaurant_id)
        return record

    #----------------
    # Live metrics
    #----------------
    def update_real_time_metrics(self, restaurant_id: str) -> Optional[CapacityRecord]:
        try:
            record = self.store.get_capacity(restaurant_id)
            if record is None:
                return None

            active = self.store.list_restaurant_orders(restaurant_id, statuses=KITCHEN_ACTIVE_STATUSES)
            recent = self.store.list_restaurant_orders(
                restaurant_id,
                statuses=[OrderStatus.DELIVERED],
                limit=self.policy.prep_time_sample_size,
            )

            now = self.clock()
            record.active_orders = len(active)
            record.preparing_orders = sum(1 for order in active if order.status == OrderStatus.PREPARING)
            record.average_prep_time = average_fulfilment_minutes(recent, self.policy.default_average_prep_time)
            record.status = resolve_capacity_status(record, record.active_orders, now)
            record.updated_at = now

            record = self.store.save_capacity(record)
            self._broadcast(restaurant_id, record.status, record.active_orders)

            logger.debug(
                "Restaurant %s capacity: %s (%d active, %.1f min prep)",
                restaurant_id, record.status.value, record.active_orders, record.average_prep_time,
            )
            return record
        except Exception:
            logger.exception("Failed to update real-time capacity metrics for restaurant %s", restaurant_id)
            return None

    def get_capacity(self, restaurant_id: str) -> Optional[CapacityRecord]:
        """
        Fresh capacity record; the first call for a restaurant creates it.
        """
        try:
            self._get_or_create(restaurant_id)
        except Exception:
            logger.exception("Failed to get capacity for restaurant %s", restaurant_id)
            return None
        return self.update_real_time_metrics(restaurant_id)

    #----------------
    # Admin controls
    #----------------
    def set_manual_status(
        self,
        restaurant_id: str,
        status: CapacityStatus,
        reason: str,
        duration_hours: Optional[float] = None,
    ) -> bool:
        status = CapacityStatus(status)
        duration_hours = self.policy.default_override_hours if duration_hours is None else duration_hours
        if duration_hours <= 0:
            raise ValueError("duration_hours must be > 0")

        try:
            now = self.clock()
            record = self._get_or_create(restaurant_id)
            record.manual_status = status
            record.manual_status_reason = reason
            record.manual_status_expiry = now + timedelta(hours=duration_hours)
            record.status = status
            record.updated_at = now
            self.store.save_capacity(record)
        except Exception:
            logger.exception("Failed to set manual status for restaurant %s", restaurant_id)
            return False

        self._broadcast(restaurant_id, status, None)
        logger.info(
            "Manual status %s set for restaurant %s until %s (%s)",
            status.value, restaurant_id, record.manual_status_expiry.isoformat(), reason,
        )
        return True

    def update_capacity_settings(
        self,
        restaurant_id: str,
        busy_threshold: Optional[int] = None,
        auto_reject_threshold: Optional[int] = None,
    ) -> bool:
        try:
            record = self._get_or_create(restaurant_id)
        except Exception:
            logger.exception("Failed to load capacity settings for restaurant %s", restaurant_id)
            return False

        busy = record.busy_threshold if busy_threshold is None else busy_threshold
        reject = record.auto_reject_threshold if auto_reject_threshold is None else auto_reject_threshold
        if busy < 1 or reject < 1:
            raise ValueError("thresholds must be >= 1")
        if busy > reject:
            raise ValueError("busy_threshold must not exceed auto_reject_threshold")

        try:
            record.busy_threshold = busy
            record.auto_reject_threshold = reject
            record.updated_at = self.clock()
            self.store.save_capacity(record)
        except Exception:
            logger.exception("Failed to update capacity settings for restaurant %s", restaurant_id)
            return False

        logger.info("Capacity settings for restaurant %s: busy=%d auto_reject=%d", restaurant_id, busy, reject)
        # thresholds feed the status, so re-resolve it now
        self.update_real_time_metrics(restaurant_id)
        return True

    #----------------
    # Checkout
    #----------------
    def can_accept_order(self, restaurant_id: str) -> AcceptanceDecision:
        capacity = self.get_capacity(restaurant_id)
        if capacity is None:
            return AcceptanceDecision(False, "Capacity information not available")

        if capacity.manual_status == CapacityStatus.CLOSED:
            return AcceptanceDecision(False, capacity.manual_status_reason or "Restaurant temporarily closed")

        if capacity.active_orders >= capacity.auto_reject_threshold:
            return AcceptanceDecision(
                False,
                "Restaurant at maximum capacity",
                capacity.average_prep_time * self.policy.reject_wait_factor,
            )

        if capacity.status == CapacityStatus.BUSY:
            return AcceptanceDecision(
                True,
                "Restaurant is busy - extended preparation time",
                capacity.average_prep_time * self.policy.busy_wait_factor,
            )

        return AcceptanceDecision(True)

    #----------------
    # History
    #----------------
    def update_historical_capacity(self, restaurant_id: str) -> Optional[CapacityRecord]:
        """
        Fold this hour's order count into the (hour, weekday) slot.
        day_of_week follows datetime.weekday() (Monday == 0).
        """
        try:
            local_now = self.local_now()
            start_of_day = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
            today = self.store.list_restaurant_orders(restaurant_id, since=start_of_day)
            this_hour = sum(
                1 for order in today
                if order.created_at.astimezone(local_now.tzinfo).hour == local_now.hour
            )

            record = self.store.get_capacity(restaurant_id)
            if record is None:
                return None
            record.historical_capacity = update_slot(
                record.historical_capacity, local_now.hour, local_now.weekday(), this_hour
            )
            return self.store.save_capacity(record)
        except Exception:
            logger.exception("Failed to update historical capacity for restaurant %s", restaurant_id)
            return None

    def predict_busy_periods(self, restaurant_id: str) -> List[BusyPeriod]:
        try:
            record = self.store.get_capacity(restaurant_id)
        except Exception:
            logger.exception("Failed to predict busy periods for restaurant %s", restaurant_id)
            return []
        if record is None:
            return []
        return predict_busy_periods(record.historical_capacity)

    def handle_order_event(self, restaurant_id: str, event_type: CapacityEventType) -> None:
        event_type = CapacityEventType(event_type)
        try:
            self.update_real_time_metrics(restaurant_id)
            self.store.record_capacity_event(restaurant_id, event_type, self.clock())

            if self.local_now().minute == self.policy.history_snapshot_minute:
                self.update_historical_capacity(restaurant_id)

            logger.debug("Order event %s processed for restaurant %s", event_type.value, restaurant_id)
        except Exception:
            logger.exception("Failed to handle %s for restaurant %s", event_type.value, restaurant_id)

    #----------------
    # Dashboards
    #----------------
    def capacity_overview(self) -> CapacityOverview:
        try:
            capacities = self.store.list_capacities()
        except Exception:
            logger.exception("Failed to load capacity overview")
            return CapacityOverview()

        if not capacities:
            return CapacityOverview()

        return CapacityOverview(
            total_restaurants=len(capacities),
            available_restaurants=sum(1 for c in capacities if c.status == CapacityStatus.AVAILABLE),
            busy_restaurants=sum(1 for c in capacities if c.status == CapacityStatus.BUSY),
            closed_restaurants=sum(1 for c in capacities if c.status == CapacityStatus.CLOSED),
            total_active_orders=sum(c.active_orders for c in capacities),
            average_prep_time=sum(c.average_prep_time for c in capacities) / len(capacities),
        )

    def restaurants_by_availability(self) -> List[RestaurantAvailability]:
        """
        Restaurants that can take orders first, then Available before Busy,
        then shortest prep time.
        """
        try:
            restaurants = self.store.list_restaurants()
            capacities = {c.restaurant_id: c for c in self.store.list_capacities()}
        except Exception:
            logger.exception("Failed to list restaurants by availability")
            return []

        listing = []
        for restaurant in restaurants:
            capacity = capacities.get(restaurant.id)
            if capacity is None:
                listing.append(
                    RestaurantAvailability(
                        id=restaurant.id,
                        name=restaurant.name,
                        status=CapacityStatus.AVAILABLE,
                        estimated_prep_time=self.policy.default_average_prep_time,
                        active_orders=0,
                        can_accept_orders=True,
                    )
                )
                continue
            listing.append(
                RestaurantAvailability(
                    id=restaurant.id,
                    name=restaurant.name,
                    status=capacity.status,
                    estimated_prep_time=capacity.average_prep_time,
                    active_orders=capacity.active_orders,
                    can_accept_orders=(
                        capacity.status != CapacityStatus.CLOSED
                        and capacity.active_orders < capacity.auto_reject_threshold
                    ),
                )
            )

        listing.sort(
            key=lambda r: (not r.can_accept_orders, r.status != CapacityStatus.AVAILABLE, r.estimated_prep_time)
        )
        return listing

    def all_restaurants_capacity(self) -> List[Dict[str, Any]]:
        try:
            restaurants = self.store.list_restaurants()
            capacities = {c.restaurant_id: c for c in self.store.list_capacities()}
        except Exception:
            logger.exception("Failed to list restaurant capacities")
            return []

        rows = []
        for restaurant in restaurants:
            capacity = capacities.get(restaurant.id)
            rows.append({
                "id": restaurant.id,
                "name": restaurant.name,
                "status": (capacity.status if capacity else CapacityStatus.AVAILABLE).value,
                "active_orders": capacity.active_orders if capacity else 0,
                "average_prep_time": capacity.average_prep_time if capacity else self.policy.default_average_prep_time,
            })
        return rows

    #----------------
    # Realtime
    #----------------
    def _broadcast(self, restaurant_id: str, status: CapacityStatus, active_orders: Optional[int]) -> None:
        if self.broadcaster is None:
            return
        try:
            self.broadcaster.broadcast(
                f"{self.policy.channel_prefix}{restaurant_id}",
                self.policy.update_event,
                {
                    "restaurant_id": restaurant_id,
                    "status": status.value,
                    "active_orders": active_orders,
                    "timestamp": self.clock().isoformat(),
                },
            )
        except Exception:
            logger.exception("Failed to broadcast capacity update for restaurant %s", restaurant_id)
