"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines the Order row as the marketplace services see it
  (id, restaurant, zone, rider, totals, timestamps, status).
- Defines the OrderStatus lifecycle:
  PENDING -> CONFIRMED -> PREPARING -> READY -> PICKED_UP -> DELIVERED
  with CANCELLED reachable from any non-terminal state.
- Groups statuses the pricing, dispatch and capacity layers count against.

Rule: No queries, no transition logic. Models only (see orders/state.py).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

LatLon = Tuple[float, float]


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Orders still moving through a zone (demand signal for pricing).
ZONE_DEMAND_STATUSES: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
)

# Orders occupying a restaurant's kitchen (capacity signal).
KITCHEN_ACTIVE_STATUSES: Tuple[OrderStatus, ...] = (
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)

# Orders a rider is holding (workload signal for dispatch).
RIDER_ACTIVE_STATUSES: Tuple[OrderStatus, ...] = (
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
)

TERMINAL_STATUSES: Tuple[OrderStatus, ...] = (
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Order:
    """
    A single customer order as stored in the `orders` table.
    """

    id: str
    restaurant_id: str
    status: OrderStatus = OrderStatus.PENDING
    total_amount: float = 0.0
    delivery_zone: Optional[str] = None
    rider_id: Optional[str] = None

    created_at: datetime = field(default_factory=utcnow)
    rider_assigned_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class Restaurant:
    """
    The pickup side of an order: where riders are sent and which fee applies.
    """

    id: str
    name: str = ""
    location: Optional[LatLon] = None
    delivery_fee: Optional[float] = None
