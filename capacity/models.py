"""
Purpose: Core data models for restaurant capacity.
What it does:
Defines the capacity record (a cached view of live order load plus the
admin's manual override), the hourly history slots, and the small result
types the capacity service hands back to callers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class CapacityStatus(str, Enum):
    AVAILABLE = "Available"
    BUSY = "Busy"
    CLOSED = "Closed"


class CapacityEventType(str, Enum):
    ORDER_CREATED = "order_created"
    ORDER_ACCEPTED = "order_accepted"
    ORDER_READY = "order_ready"
    ORDER_COMPLETED = "order_completed"
    ORDER_CANCELLED = "order_cancelled"


@dataclass
class HistoricalSlot:
    """
    Rolling order volume for one (hour, day_of_week) slot.
    day_of_week follows datetime.weekday(): Monday == 0.
    """
    hour: int
    day_of_week: int
    average_orders: float
    peak_capacity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hour": self.hour,
            "day_of_week": self.day_of_week,
            "average_orders": self.average_orders,
            "peak_capacity": self.peak_capacity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> HistoricalSlot:
        """
        Also reads the camelCase entries older rows carry, whose dayOfWeek
        counts from Sunday == 0.
        """
        if "day_of_week" in data:
            day_of_week = int(data["day_of_week"])
        else:
            day_of_week = (int(data["dayOfWeek"]) - 1) % 7
        return cls(
            hour=int(data["hour"]),
            day_of_week=day_of_week,
            average_orders=float(data.get("average_orders", data.get("averageOrders", 0))),
            peak_capacity=int(data.get("peak_capacity", data.get("peakCapacity", 0))),
        )


@dataclass
class CapacityRecord:
    """
    One row of `restaurant_capacity`. Not authoritative: recomputed from
    live order counts, with the manual override as the escape hatch.
    """
    restaurant_id: str
    status: CapacityStatus = CapacityStatus.AVAILABLE
    active_orders: int = 0
    preparing_orders: int = 0
    average_prep_time: float = 25.0

    busy_threshold: int = 10
    auto_reject_threshold: int = 20

    manual_status: Optional[CapacityStatus] = None
    manual_status_reason: Optional[str] = None
    manual_status_expiry: Optional[datetime] = None

    historical_capacity: List[HistoricalSlot] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    def override_active(self, now: datetime) -> bool:
        """An override only counts while it has an expiry in the future."""
        return (
            self.manual_status is not None
            and self.manual_status_expiry is not None
            and self.manual_status_expiry > now
        )

    def clear_override(self) -> None:
        self.manual_status = None
        self.manual_status_reason = None
        self.manual_status_expiry = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "restaurant_id": self.restaurant_id,
            "status": self.status.value,
            "active_orders": self.active_orders,
            "preparing_orders": self.preparing_orders,
            "average_prep_time": self.average_prep_time,
            "busy_threshold": self.busy_threshold,
            "auto_reject_threshold": self.auto_reject_threshold,
            "manual_status": self.manual_status.value if self.manual_status else None,
            "manual_status_reason": self.manual_status_reason,
            "manual_status_expiry": self.manual_status_expiry.isoformat() if self.manual_status_expiry else None,
            "historical_capacity": [slot.to_dict() for slot in self.historical_capacity],
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class AcceptanceDecision:
    can_accept: bool
    reason: Optional[str] = None
    estimated_wait_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_accept": self.can_accept,
            "reason": self.reason,
            "estimated_wait_time": self.estimated_wait_time,
        }


@dataclass(frozen=True)
class BusyPeriod:
    hour: int
    day_of_week: int
    predicted_orders: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hour": self.hour,
            "day_of_week": self.day_of_week,
            "predicted_orders": self.predicted_orders,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class RestaurantAvailability:
    id: str
    name: str
    status: CapacityStatus
    estimated_prep_time: float
    active_orders: int
    can_accept_orders: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "estimated_prep_time": self.estimated_prep_time,
            "active_orders": self.active_orders,
            "can_accept_orders": self.can_accept_orders,
        }


@dataclass(frozen=True)
class CapacityOverview:
    total_restaurants: int = 0
    available_restaurants: int = 0
    busy_restaurants: int = 0
    closed_restaurants: int = 0
    total_active_orders: int = 0
    average_prep_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_restaurants": self.total_restaurants,
            "available_restaurants": self.available_restaurants,
            "busy_restaurants": self.busy_restaurants,
            "closed_restaurants": self.closed_restaurants,
            "total_active_orders": self.total_active_orders,
            "average_prep_time": self.average_prep_time,
        }
