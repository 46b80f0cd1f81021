"""
Purpose: In-memory implementation of the marketplace data store.
What it does:
- Owns dict-backed tables for orders, restaurants, riders, ratings,
  capacity records, assignment logs, capacity events and settings.
- Answers the same questions SupabaseStore answers, so every service can run
  against it (tests, the simulation script, MARKETPLACE_STORE=memory).
- Emulates the row-level atomicity of the conditional rider claim with a lock.

Rule: Store owns rows, services own rules.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from capacity.models import CapacityEventType, CapacityRecord
from dispatch.models import AssignmentLog
from orders.models import Order, OrderStatus, RIDER_ACTIVE_STATUSES, Restaurant
from orders.state import can_be_claimed, claim_order, transition_order
from riders.models import Rider, RiderStatus

from .errors import StoreError

logger = logging.getLogger(__name__)


@dataclass
class InMemoryStore:
    """
    Dict-backed store. Reads hand back copies so callers cannot mutate
    stored rows without going through a write method.
    """
    _orders: Dict[str, Order] = field(default_factory=dict)
    _restaurants: Dict[str, Restaurant] = field(default_factory=dict)
    _riders: Dict[str, Rider] = field(default_factory=dict)
    _ratings: Dict[str, List[float]] = field(default_factory=dict)
    _capacities: Dict[str, CapacityRecord] = field(default_factory=dict)
    _settings: Dict[str, Any] = field(default_factory=dict)
    _user_roles: Dict[str, str] = field(default_factory=dict)

    assignment_logs: List[AssignmentLog] = field(default_factory=list)
    capacity_events: List[Tuple[str, CapacityEventType, datetime]] = field(default_factory=list)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # --- Seeding (tests / simulation) ---

    def add_order(self, order: Order) -> None:
        self._orders[order.id] = replace(order)

    def add_restaurant(self, restaurant: Restaurant) -> None:
        self._restaurants[restaurant.id] = restaurant

    def add_rider(self, rider: Rider) -> None:
        self._riders[rider.id] = rider

    def add_rating(self, rider_id: str, rating: float) -> None:
        self._ratings.setdefault(rider_id, []).append(rating)

    def set_user_role(self, user_id: str, role: str) -> None:
        self._user_roles[user_id] = role

    def update_order_status(self, order_id: str, status: OrderStatus, at: Optional[datetime] = None) -> Order:
        with self._lock:
            order = self._orders[order_id]
            transition_order(order, status, at)
            return replace(order)

    # --- Orders ---

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return replace(order) if order else None

    def count_zone_orders(
        self,
        zone_id: str,
        since: datetime,
        statuses: Optional[Sequence[OrderStatus]] = None,
    ) -> int:
        return sum(
            1 for order in self._orders.values()
            if order.delivery_zone == zone_id
            and order.created_at >= since
            and (statuses is None or order.status in statuses)
        )

    def list_restaurant_orders(
        self,
        restaurant_id: str,
        *,
        statuses: Optional[Sequence[OrderStatus]] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        """Newest first, like `order=created_at.desc`."""
        matches = [
            order for order in self._orders.values()
            if order.restaurant_id == restaurant_id
            and (statuses is None or order.status in statuses)
            and (since is None or order.created_at >= since)
        ]
        matches.sort(key=lambda order: order.created_at, reverse=True)
        if limit is not None:
            matches = matches[:limit]
        return [replace(order) for order in matches]

    def list_rider_orders(self, rider_id: str, *, since: Optional[datetime] = None) -> List[Order]:
        return [
            replace(order) for order in self._orders.values()
            if order.rider_id == rider_id and (since is None or order.created_at >= since)
        ]

    def count_active_rider_orders(self, rider_id: str) -> int:
        return sum(
            1 for order in self._orders.values()
            if order.rider_id == rider_id and order.status in RIDER_ACTIVE_STATUSES
        )

    def count_active_orders_by_rider(self, rider_ids: Sequence[str]) -> Dict[str, int]:
        wanted = set(rider_ids)
        return dict(Counter(
            order.rider_id for order in self._orders.values()
            if order.rider_id in wanted and order.status in RIDER_ACTIVE_STATUSES
        ))

    def claim_order(self, order_id: str, rider_id: str, at: datetime) -> bool:
        """
        Equivalent of
        UPDATE orders SET rider_id=... WHERE id=... AND status='confirmed' AND rider_id IS NULL
        Returns True only if this call performed the update.
        """
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or not can_be_claimed(order):
                return False
            claim_order(order, rider_id, at)
            return True

    # --- Restaurants / riders / users ---

    def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        return self._restaurants.get(restaurant_id)

    def list_restaurants(self) -> List[Restaurant]:
        return list(self._restaurants.values())

    def get_rider(self, rider_id: str) -> Optional[Rider]:
        return self._riders.get(rider_id)

    def list_online_riders(self, zone_id: Optional[str] = None) -> List[Rider]:
        return [
            rider for rider in self._riders.values()
            if rider.is_online and rider.status == RiderStatus.ACTIVE
            and (zone_id is None or rider.serves_zone(zone_id))
        ]

    def list_rider_ratings(self, rider_id: str) -> List[float]:
        return list(self._ratings.get(rider_id, []))

    def get_user_role(self, user_id: str) -> Optional[str]:
        return self._user_roles.get(user_id)

    # --- Assignment logs ---

    def log_assignment(self, log: AssignmentLog) -> None:
        self.assignment_logs.append(log)

    def list_assignment_logs(self, since: datetime) -> List[AssignmentLog]:
        return [log for log in self.assignment_logs if log.assigned_at >= since]

    # --- Capacity ---

    def get_capacity(self, restaurant_id: str) -> Optional[CapacityRecord]:
        record = self._capacities.get(restaurant_id)
        return copy.deepcopy(record) if record else None

    def insert_capacity(self, record: CapacityRecord) -> CapacityRecord:
        with self._lock:
            if record.restaurant_id in self._capacities:
                raise StoreError(f"Capacity record for {record.restaurant_id} already exists")
            self._capacities[record.restaurant_id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def save_capacity(self, record: CapacityRecord) -> CapacityRecord:
        self._capacities[record.restaurant_id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def list_capacities(self) -> List[CapacityRecord]:
        return [copy.deepcopy(record) for record in self._capacities.values()]

    def record_capacity_event(self, restaurant_id: str, event_type: CapacityEventType, at: datetime) -> None:
        self.capacity_events.append((restaurant_id, event_type, at))

    # --- Settings ---

    def get_setting(self, key: str) -> Optional[Any]:
        value = self._settings.get(key)
        return copy.deepcopy(value) if value is not None else None

    def save_setting(self, key: str, value: Any, at: Optional[datetime] = None) -> None:
        self._settings[key] = copy.deepcopy(value)


class RecordingBroadcaster:
    """
    Stand-in for the Realtime channel: keeps every message it was asked to send.
    """
    def __init__(self):
        self.messages: List[Dict[str, Any]] = []

    def broadcast(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        self.messages.append({"topic": topic, "event": event, "payload": payload})
        logger.debug("Recorded %s on %s", event, topic)

    def messages_for(self, topic: str) -> List[Dict[str, Any]]:
        return [message for message in self.messages if message["topic"] == topic]


def seed_store(
    store: InMemoryStore,
    *,
    restaurants: Iterable[Restaurant] = (),
    riders: Iterable[Rider] = (),
    orders: Iterable[Order] = (),
) -> InMemoryStore:
    for restaurant in restaurants:
        store.add_restaurant(restaurant)
    for rider in riders:
        store.add_rider(rider)
    for order in orders:
        store.add_order(order)
    return store
