"""
Purpose: Data models for dynamic delivery pricing.
What it does:
Defines the surge factor breakdown, the price breakdown before and after
surge, and the result handed back to checkout and the admin surge panel.

Rule: Models only. Factor rules live in pricing/factors.py, orchestration in
pricing/engine.py.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict


class DeliveryType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


@dataclass(frozen=True)
class SurgeFactors:
    """
    Independent multipliers; the surge multiplier is their clamped product.
    """
    demand_multiplier: float = 1.0
    rider_availability: float = 1.0
    peak_hours: float = 1.0
    weather_condition: float = 1.0
    zone_multiplier: float = 1.0
    event_multiplier: float = 1.0

    # zone is a standing premium, never reported as the reason for a surge
    PRIMARY_CANDIDATES = (
        "demand_multiplier",
        "rider_availability",
        "peak_hours",
        "weather_condition",
        "event_multiplier",
    )

    def combined(self) -> float:
        return (
            self.demand_multiplier
            * self.rider_availability
            * self.peak_hours
            * self.weather_condition
            * self.zone_multiplier
            * self.event_multiplier
        )

    def primary_factor(self) -> str:
        """Largest factor; the earliest one wins a tie."""
        best = self.PRIMARY_CANDIDATES[0]
        for name in self.PRIMARY_CANDIDATES[1:]:
            if getattr(self, name) > getattr(self, best):
                best = name
        return best

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    delivery_fee: float
    service_fee: float
    total: float
    surge_amount: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class SurgeInfo:
    is_active: bool
    multiplier: float
    factors: SurgeFactors
    display_message: str
    estimated_normal_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_active": self.is_active,
            "multiplier": self.multiplier,
            "factors": self.factors.to_dict(),
            "display_message": self.display_message,
            "estimated_normal_time": self.estimated_normal_time,
        }


@dataclass(frozen=True)
class DynamicPriceResult:
    original_price: PriceBreakdown
    adjusted_price: PriceBreakdown
    surge_info: SurgeInfo

    def to_dict(self) -> Dict[str, Any]:
        original = self.original_price.to_dict()
        original.pop("surge_amount")
        return {
            "original_price": original,
            "adjusted_price": self.adjusted_price.to_dict(),
            "surge_info": self.surge_info.to_dict(),
        }


@dataclass(frozen=True)
class RiderSupply:
    available_riders: int
    busy_riders: int
    total_riders: int

    @property
    def availability_ratio(self) -> float:
        if self.total_riders <= 0:
            return 1.0
        return self.available_riders / self.total_riders


@dataclass(frozen=True)
class WeatherCondition:
    condition: str
    multiplier: float


@dataclass(frozen=True)
class ZoneSurgeStatus:
    zone: str
    multiplier: float
    is_active: bool
    primary_factor: str
    message: str
    factors: SurgeFactors = field(default_factory=SurgeFactors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zone": self.zone,
            "multiplier": self.multiplier,
            "is_active": self.is_active,
            "primary_factor": self.primary_factor,
            "message": self.message,
            "factors": self.factors.to_dict(),
        }


