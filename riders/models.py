"""
Purpose: Core data models for the riders domain.
What it does:
Defines the structure of a Rider, their rolling metrics, and the score
breakdown the dispatch layer ranks on, without relying on any ORM.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

LatLon = Tuple[float, float]


class RiderStatus(str, Enum):
    """
    Account status of a rider profile. Only ACTIVE riders are dispatchable.
    """
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class Rider:
    """
    A purely stateless representation of a Rider at a specific point in time.
    """
    id: str
    location: Optional[LatLon]
    is_online: bool = False
    status: RiderStatus = RiderStatus.ACTIVE

    max_concurrent_orders: int = 2
    preferred_zones: Tuple[str, ...] = ()

    @classmethod
    def new(
        cls,
        rider_id: str,
        lat: Optional[float],
        lon: Optional[float],
        is_online: bool = True,
        status: str | RiderStatus = RiderStatus.ACTIVE,
        max_concurrent_orders: int = 2,
        preferred_zones: Iterable[str] = (),
    ) -> Rider:
        if isinstance(status, str):
            status = RiderStatus(status)

        location = (lat, lon) if lat is not None and lon is not None else None

        return cls(
            id=rider_id,
            location=location,
            is_online=is_online,
            status=status,
            max_concurrent_orders=max_concurrent_orders,
            preferred_zones=tuple(preferred_zones),
        )

    @property
    def is_dispatchable(self) -> bool:
        return self.is_online and self.status == RiderStatus.ACTIVE and self.location is not None

    def serves_zone(self, zone: str) -> bool:
        return zone in self.preferred_zones


@dataclass(frozen=True)
class RiderPerformance:
    """
    Rolling delivery metrics over the performance window (30 days by default).
    completion_rate is a percentage (0-100).
    """
    completion_rate: float
    average_delivery_minutes: float
    total_deliveries: int = 0


@dataclass(frozen=True)
class RiderRating:
    average: float
    count: int = 0


@dataclass(frozen=True)
class ScoreFactors:
    """
    Sub-scores on a 0-100 scale.
    """
    proximity: float
    availability: float
    performance: float
    workload: float
    rating: float


@dataclass(frozen=True)
class RiderScore:
    rider_id: str
    score: float
    factors: ScoreFactors
    distance_km: float
    active_orders: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
