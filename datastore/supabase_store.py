"""
Purpose: Supabase-backed implementation of the marketplace data store.
What it does:
Translates the questions the pricing, dispatch and capacity services ask
into PostgREST calls through SupabaseClient, and turns rows into domain
models.

Tables used: orders, restaurants, rider_profiles, order_ratings, users,
rider_assignment_logs, restaurant_capacity, capacity_events, system_settings.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from capacity.models import CapacityEventType, CapacityRecord, CapacityStatus, HistoricalSlot
from dispatch.models import AssignmentLog, AssignmentType
from orders.models import Order, OrderStatus, RIDER_ACTIVE_STATUSES, Restaurant, utcnow
from riders.models import Rider, RiderStatus

from .errors import StoreError
from .supabase_client import Filter, SupabaseClient

logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


#----------------
# Row -> model converters
#----------------
def order_from_row(row: Dict[str, Any]) -> Order:
    return Order(
        id=str(row["id"]),
        restaurant_id=str(row["restaurant_id"]),
        status=OrderStatus(row["status"]),
        total_amount=float(row.get("total_amount") or 0),
        delivery_zone=row.get("delivery_zone"),
        rider_id=row.get("rider_id"),
        created_at=parse_timestamp(row.get("created_at")) or utcnow(),
        rider_assigned_at=parse_timestamp(row.get("rider_assigned_at")),
        delivered_at=parse_timestamp(row.get("delivered_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
    )


def restaurant_from_row(row: Dict[str, Any]) -> Restaurant:
    # location is stored as JSON; older rows use latitude/longitude keys
    location = row.get("location") or {}
    lat = location.get("lat", location.get("latitude"))
    lng = location.get("lng", location.get("longitude"))
    return Restaurant(
        id=str(row["id"]),
        name=row.get("name") or "",
        location=(float(lat), float(lng)) if lat is not None and lng is not None else None,
        delivery_fee=float(row["delivery_fee"]) if row.get("delivery_fee") is not None else None,
    )


def rider_from_row(row: Dict[str, Any]) -> Rider:
    location = row.get("current_location") or {}
    return Rider.new(
        rider_id=str(row["user_id"]),
        lat=location.get("latitude"),
        lon=location.get("longitude"),
        is_online=bool(row.get("is_online")),
        status=row.get("status") or RiderStatus.PENDING,
        max_concurrent_orders=int(row.get("max_concurrent_orders") or 2),
        preferred_zones=row.get("preferred_zones") or (),
    )


def capacity_from_row(row: Dict[str, Any]) -> CapacityRecord:
    manual_status = row.get("manual_status")
    return CapacityRecord(
        restaurant_id=str(row["restaurant_id"]),
        status=CapacityStatus(row.get("status") or CapacityStatus.AVAILABLE.value),
        active_orders=int(row.get("active_orders") or 0),
        preparing_orders=int(row.get("preparing_orders") or 0),
        average_prep_time=float(row.get("average_prep_time") or 25),
        busy_threshold=int(row.get("busy_threshold") or 10),
        auto_reject_threshold=int(row.get("auto_reject_threshold") or 20),
        manual_status=CapacityStatus(manual_status) if manual_status else None,
        manual_status_reason=row.get("manual_status_reason"),
        manual_status_expiry=parse_timestamp(row.get("manual_status_expiry")),
        historical_capacity=[HistoricalSlot.from_dict(slot) for slot in row.get("historical_capacity") or []],
        updated_at=parse_timestamp(row.get("updated_at")),
    )


def capacity_to_row(record: CapacityRecord) -> Dict[str, Any]:
    row = record.to_dict()
    row["updated_at"] = isoformat(record.updated_at or utcnow())
    return row


def assignment_log_from_row(row: Dict[str, Any]) -> AssignmentLog:
    score = row.get("assignment_score")
    return AssignmentLog(
        order_id=str(row["order_id"]),
        rider_id=str(row["rider_id"]),
        assignment_type=AssignmentType(row["assignment_type"]),
        assigned_at=parse_timestamp(row["assigned_at"]),
        assignment_score=float(score) if score is not None else None,
    )


class SupabaseStore:
    """
    Data store over Supabase PostgREST. Every method is a single round trip
    (or two for get-then-write paths) and raises StoreError/SupabaseError on
    failure; services decide whether to swallow it.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self.client = client or SupabaseClient()

    # --- Orders ---

    def get_order(self, order_id: str) -> Optional[Order]:
        rows = self.client.select("orders", filters=[("id", "eq", order_id)], limit=1)
        return order_from_row(rows[0]) if rows else None

    def count_zone_orders(
        self,
        zone_id: str,
        since: datetime,
        statuses: Optional[Sequence[OrderStatus]] = None,
    ) -> int:
        filters: List[Filter] = [("delivery_zone", "eq", zone_id), ("created_at", "gte", since)]
        if statuses is not None:
            filters.append(("status", "in", list(statuses)))
        return self.client.count("orders", filters)

    def list_restaurant_orders(
        self,
        restaurant_id: str,
        *,
        statuses: Optional[Sequence[OrderStatus]] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        filters: List[Filter] = [("restaurant_id", "eq", restaurant_id)]
        if statuses is not None:
            filters.append(("status", "in", list(statuses)))
        if since is not None:
            filters.append(("created_at", "gte", since))
        rows = self.client.select("orders", filters=filters, order="created_at.desc", limit=limit)
        return [order_from_row(row) for row in rows]

    def list_rider_orders(self, rider_id: str, *, since: Optional[datetime] = None) -> List[Order]:
        filters: List[Filter] = [("rider_id", "eq", rider_id)]
        if since is not None:
            filters.append(("created_at", "gte", since))
        return [order_from_row(row) for row in self.client.select("orders", filters=filters)]

    def count_active_rider_orders(self, rider_id: str) -> int:
        return self.client.count(
            "orders",
            [("rider_id", "eq", rider_id), ("status", "in", list(RIDER_ACTIVE_STATUSES))],
        )

    def count_active_orders_by_rider(self, rider_ids: Sequence[str]) -> Dict[str, int]:
        """One select for the whole batch; riders with no active order are absent."""
        if not rider_ids:
            return {}
        rows = self.client.select(
            "orders",
            "rider_id",
            [("rider_id", "in", list(rider_ids)), ("status", "in", list(RIDER_ACTIVE_STATUSES))],
        )
        return dict(Counter(str(row["rider_id"]) for row in rows))

    def claim_order(self, order_id: str, rider_id: str, at: datetime) -> bool:
        """
        Conditional update; the row filters are the whole concurrency story.
        Postgres applies them atomically, so only one claimant gets a row back.
        """
        rows = self.client.update(
            "orders",
            {
                "rider_id": rider_id,
                "rider_assigned_at": isoformat(at),
                "updated_at": isoformat(at),
            },
            [
                ("id", "eq", order_id),
                ("status", "eq", OrderStatus.CONFIRMED),
                ("rider_id", "is", None),
            ],
        )
        return len(rows) == 1

    # --- Restaurants / riders / users ---

    def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        rows = self.client.select(
            "restaurants",
            "id, name, location, delivery_fee",
            [("id", "eq", restaurant_id)],
            limit=1,
        )
        return restaurant_from_row(rows[0]) if rows else None

    def list_restaurants(self) -> List[Restaurant]:
        rows = self.client.select("restaurants", "id, name, location, delivery_fee")
        return [restaurant_from_row(row) for row in rows]

    def get_rider(self, rider_id: str) -> Optional[Rider]:
        rows = self.client.select("rider_profiles", filters=[("user_id", "eq", rider_id)], limit=1)
        return rider_from_row(rows[0]) if rows else None

    def list_online_riders(self, zone_id: Optional[str] = None) -> List[Rider]:
        filters: List[Filter] = [("is_online", "eq", True), ("status", "eq", RiderStatus.ACTIVE)]
        if zone_id is not None:
            filters.append(("preferred_zones", "cs", [zone_id]))
        return [rider_from_row(row) for row in self.client.select("rider_profiles", filters=filters)]

    def list_rider_ratings(self, rider_id: str) -> List[float]:
        rows = self.client.select(
            "order_ratings",
            "rider_rating",
            [("rider_id", "eq", rider_id), ("rider_rating", "not.is", None)],
        )
        return [float(row["rider_rating"]) for row in rows if row.get("rider_rating") is not None]

    def get_user_role(self, user_id: str) -> Optional[str]:
        rows = self.client.select("users", "user_role", [("id", "eq", user_id)], limit=1)
        return rows[0].get("user_role") if rows else None

    # --- Assignment logs ---

    def log_assignment(self, log: AssignmentLog) -> None:
        self.client.insert(
            "rider_assignment_logs",
            {
                "order_id": log.order_id,
                "rider_id": log.rider_id,
                "assignment_type": log.assignment_type.value,
                "assignment_score": log.assignment_score,
                "assigned_at": isoformat(log.assigned_at),
            },
        )

    def list_assignment_logs(self, since: datetime) -> List[AssignmentLog]:
        rows = self.client.select("rider_assignment_logs", filters=[("assigned_at", "gte", since)])
        return [assignment_log_from_row(row) for row in rows]

    # --- Capacity ---

    def get_capacity(self, restaurant_id: str) -> Optional[CapacityRecord]:
        rows = self.client.select("restaurant_capacity", filters=[("restaurant_id", "eq", restaurant_id)], limit=1)
        return capacity_from_row(rows[0]) if rows else None

    def insert_capacity(self, record: CapacityRecord) -> CapacityRecord:
        rows = self.client.insert("restaurant_capacity", capacity_to_row(record))
        if not rows:
            raise StoreError(f"Capacity insert for {record.restaurant_id} returned no row")
        return capacity_from_row(rows[0])

    def save_capacity(self, record: CapacityRecord) -> CapacityRecord:
        rows = self.client.update(
            "restaurant_capacity",
            capacity_to_row(record),
            [("restaurant_id", "eq", record.restaurant_id)],
        )
        if not rows:
            raise StoreError(f"No capacity record for {record.restaurant_id}")
        return capacity_from_row(rows[0])

    def list_capacities(self) -> List[CapacityRecord]:
        return [capacity_from_row(row) for row in self.client.select("restaurant_capacity")]

    def record_capacity_event(self, restaurant_id: str, event_type: CapacityEventType, at: datetime) -> None:
        self.client.insert(
            "capacity_events",
            {"restaurant_id": restaurant_id, "event_type": event_type.value, "timestamp": isoformat(at)},
        )

    # --- Settings ---

    def get_setting(self, key: str) -> Optional[Any]:
        rows = self.client.select("system_settings", "value", [("key", "eq", key)], limit=1)
        return rows[0].get("value") if rows else None

    def save_setting(self, key: str, value: Any, at: Optional[datetime] = None) -> None:
        self.client.upsert(
            "system_settings",
            {"key": key, "value": value, "updated_at": isoformat(at or utcnow())},
            on_conflict="key",
        )


class RealtimeBroadcaster:
    """
    Sends capacity (and other) updates over Supabase Realtime broadcast.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self.client = client or SupabaseClient()

    def broadcast(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        self.client.broadcast(topic, event, payload)
