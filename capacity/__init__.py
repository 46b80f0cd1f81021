"""
Restaurant capacity package.

Public API:
- Service: CapacityService, resolve_capacity_status
- Policy: CapacityPolicy, default_capacity_policy
- Models: CapacityRecord, CapacityStatus, CapacityEventType and result types
"""
from .models import (
    AcceptanceDecision,
    BusyPeriod,
    CapacityEventType,
    CapacityOverview,
    CapacityRecord,
    CapacityStatus,
    HistoricalSlot,
    RestaurantAvailability,
)
from .policy import CapacityPolicy, default_capacity_policy
from .service import CapacityService, resolve_capacity_status

__all__ = [
    "AcceptanceDecision",
    "BusyPeriod",
    "CapacityEventType",
    "CapacityOverview",
    "CapacityRecord",
    "CapacityStatus",
    "HistoricalSlot",
    "RestaurantAvailability",
    "CapacityPolicy",
    "default_capacity_policy",
    "CapacityService",
    "resolve_capacity_status",
]
