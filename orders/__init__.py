"""
Orders domain package.

Public API:
- Domain models: Order, OrderStatus, Restaurant and the status groups
- Lifecycle: transition_order, claim_order, can_be_claimed, OrderStateError
"""
from .models import (
    Order,
    OrderStatus,
    Restaurant,
    ZONE_DEMAND_STATUSES,
    KITCHEN_ACTIVE_STATUSES,
    RIDER_ACTIVE_STATUSES,
)
from .state import OrderStateError, can_be_claimed, claim_order, transition_order

__all__ = [
    "Order",
    "OrderStatus",
    "Restaurant",
    "ZONE_DEMAND_STATUSES",
    "KITCHEN_ACTIVE_STATUSES",
    "RIDER_ACTIVE_STATUSES",
    "OrderStateError",
    "can_be_claimed",
    "claim_order",
    "transition_order",
]
