"""
Purpose: Order lifecycle transitions.
What it does:
Validates and applies status changes on an Order, and decides whether an
order may still be claimed by a rider.

Rule: Pure functions over the Order model. Persistence lives in datastore/.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from .models import Order, OrderStatus, utcnow


class OrderStateError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition_order(order: Order, target: OrderStatus, at: Optional[datetime] = None) -> Order:
    """
    Move an order to `target`, stamping `updated_at` (and `delivered_at`
    when the order completes).
    """
    if not can_transition(order.status, target):
        raise OrderStateError(
            f"Cannot transition order {order.id} from {order.status.value} to {target.value}"
        )

    at = at or utcnow()
    order.status = target
    order.updated_at = at
    if target == OrderStatus.DELIVERED:
        order.delivered_at = at
    return order


def can_be_claimed(order: Order) -> bool:
    """
    An order is claimable only while it is CONFIRMED and nobody holds it.
    Mirrors the conditional update `status='confirmed' AND rider_id IS NULL`.
    """
    return order.status == OrderStatus.CONFIRMED and order.rider_id is None


def claim_order(order: Order, rider_id: str, at: Optional[datetime] = None) -> Order:
    """
    Attach a rider to a claimable order. The kitchen status is left untouched.
    """
    if not can_be_claimed(order):
        raise OrderStateError(
            f"Order {order.id} is not claimable (status={order.status.value}, rider={order.rider_id})"
        )

    at = at or utcnow()
    order.rider_id = rider_id
    order.rider_assigned_at = at
    order.updated_at = at
    return order
