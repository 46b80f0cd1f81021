"""
Purpose: Central configuration for dynamic delivery pricing.
What it does:

Stores all tunable fees, surge limits and factor tables:

BASE_SERVICE_FEE = 10% of subtotal
BASE_DELIVERY_FEE = 500 (when the restaurant has none)
SURGE LIMITS = 0.8x .. 2.5x (service fee surge capped at 1.5x)
PEAK HOURS = lunch 12-14, dinner 18-21, weekend 11-22, off-peak 14-17
ZONES = isolo 1.0, ikeja 1.1, vi 1.2, lekki 1.15, mainland 0.95

The policy round-trips through to_dict()/from_dict() so admins can change it
at runtime; the engine persists it under system_settings.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Tuple

Tier = Tuple[float, float]


@dataclass(frozen=True)
class PeakWindow:
    """Inclusive hour range [start, end] in local time."""
    start: int
    end: int
    multiplier: float

    def contains(self, hour: int) -> bool:
        return self.start <= hour <= self.end


@dataclass(frozen=True)
class Holiday:
    month: int
    day: int
    multiplier: float


@dataclass(frozen=True)
class WeatherScenario:
    condition: str
    multiplier: float
    weight: float


@dataclass(frozen=True)
class RushPattern:
    """Share of the rider pool still free during an hour range (inclusive)."""
    start: int
    end: int
    availability: float

    def contains(self, hour: int) -> bool:
        if self.start <= self.end:
            return self.start <= hour <= self.end
        # wraps midnight, e.g. 22 -> 6
        return hour >= self.start or hour <= self.end


def _default_zones() -> Dict[str, float]:
    return {
        "isolo": 1.0,
        "ikeja": 1.1,
        "vi": 1.2,
        "lekki": 1.15,
        "mainland": 0.95,
    }


@dataclass(frozen=True)
class PricingPolicy:
    """
    Central configuration for dynamic pricing (Lagos market defaults).
    """

    # --- Base fees ---
    base_service_fee_rate: float = 0.10
    base_delivery_fee: float = 500.0

    # --- Surge limits ---
    max_surge_multiplier: float = 2.5
    min_discount_multiplier: float = 0.8
    # The service fee never surges past this, whatever the multiplier.
    service_fee_surge_cap: float = 1.5

    # --- Local clock ---
    # Lagos is UTC+1 all year (no DST).
    utc_offset_hours: int = 1

    # --- Demand ---
    demand_window_hours: int = 1
    demand_history_days: int = 7
    # Checked top-down: ratio strictly above the threshold gets the multiplier.
    demand_tiers: Tuple[Tier, ...] = ((3.0, 2.0), (2.5, 1.75), (2.0, 1.5), (1.5, 1.25))
    low_demand_ratio: float = 0.7
    low_demand_multiplier: float = 0.9

    # --- Rider supply ---
    # Checked top-down: ratio strictly below the threshold gets the multiplier.
    rider_shortage_tiers: Tuple[Tier, ...] = ((0.3, 2.0), (0.5, 1.5), (0.7, 1.25))
    rider_abundance_ratio: float = 0.9
    rider_abundance_multiplier: float = 0.95

    # Used when the store reports no riders for a zone.
    simulated_total_riders: int = 30
    simulated_available_riders: int = 20
    simulated_busy_riders: int = 10
    rush_patterns: Tuple[RushPattern, ...] = (
        RushPattern(7, 9, 0.7),     # morning
        RushPattern(12, 14, 0.6),   # lunch
        RushPattern(18, 21, 0.5),   # evening
        RushPattern(22, 6, 0.3),    # late night
    )

    # --- Peak hours ---
    # Weekend is Saturday/Sunday (datetime.weekday() 5 and 6).
    weekend_days: Tuple[int, ...] = (5, 6)
    weekend_peak: PeakWindow = PeakWindow(11, 22, 1.3)
    lunch_peak: PeakWindow = PeakWindow(12, 14, 1.5)
    dinner_peak: PeakWindow = PeakWindow(18, 21, 1.75)
    afternoon_lull: PeakWindow = PeakWindow(14, 17, 0.9)

    # --- Weather (simulated until a weather API is wired in) ---
    weather_scenarios: Tuple[WeatherScenario, ...] = (
        WeatherScenario("clear", 1.0, 60),
        WeatherScenario("light_rain", 1.25, 25),
        WeatherScenario("heavy_rain", 1.5, 10),
        WeatherScenario("storm", 2.0, 5),
    )

    # --- Calendar events ---
    holidays: Tuple[Holiday, ...] = (
        Holiday(1, 1, 1.5),     # New Year
        Holiday(10, 1, 1.3),    # Independence Day
        Holiday(12, 25, 2.0),   # Christmas
        Holiday(12, 26, 1.8),   # Boxing Day
        Holiday(12, 31, 1.5),   # New Year's Eve
    )
    # Friday/Saturday nights
    nightlife_days: Tuple[int, ...] = (4, 5)
    nightlife_window: PeakWindow = PeakWindow(20, 23, 1.4)

    # --- Zones ---
    zone_multipliers: Dict[str, float] = field(default_factory=_default_zones)

    # --- Customer messaging ---
    demand_recovery_minutes: int = 45
    demand_recovery_threshold: float = 1.3

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if not 0 <= self.base_service_fee_rate <= 1:
            raise ValueError("base_service_fee_rate must be within 0-1")

        if self.base_delivery_fee < 0:
            raise ValueError("base_delivery_fee must be >= 0")

        if self.min_discount_multiplier <= 0:
            raise ValueError("min_discount_multiplier must be > 0")

        if self.min_discount_multiplier > 1.0 or self.max_surge_multiplier < 1.0:
            raise ValueError("surge limits must bracket 1.0")

        if self.service_fee_surge_cap < 1.0:
            raise ValueError("service_fee_surge_cap must be >= 1.0")

        if not -12 <= self.utc_offset_hours <= 14:
            raise ValueError("utc_offset_hours must be a real UTC offset")

        if self.demand_window_hours <= 0 or self.demand_history_days <= 0:
            raise ValueError("demand windows must be > 0")

        if any(multiplier <= 0 for multiplier in self.zone_multipliers.values()):
            raise ValueError("zone multipliers must be > 0")

        if not self.weather_scenarios or sum(s.weight for s in self.weather_scenarios) <= 0:
            raise ValueError("weather_scenarios must carry a positive total weight")

        if self.simulated_total_riders <= 0:
            raise ValueError("simulated_total_riders must be > 0")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PricingPolicy:
        """
        Rebuild a policy from its to_dict() form (or a partial of it, e.g.
        a stored config). Unknown keys are rejected.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown pricing settings: {', '.join(sorted(unknown))}")

        values = dict(data)
        for key in ("weekend_peak", "lunch_peak", "dinner_peak", "afternoon_lull", "nightlife_window"):
            if isinstance(values.get(key), dict):
                values[key] = PeakWindow(**values[key])
        if "holidays" in values:
            values["holidays"] = tuple(_coerce(Holiday, item) for item in values["holidays"])
        if "weather_scenarios" in values:
            values["weather_scenarios"] = tuple(_coerce(WeatherScenario, item) for item in values["weather_scenarios"])
        if "rush_patterns" in values:
            values["rush_patterns"] = tuple(_coerce(RushPattern, item) for item in values["rush_patterns"])
        for key in ("demand_tiers", "rider_shortage_tiers"):
            if key in values:
                values[key] = tuple((float(t), float(m)) for t, m in values[key])
        for key in ("weekend_days", "nightlife_days"):
            if key in values:
                values[key] = tuple(int(day) for day in values[key])
        if "zone_multipliers" in values:
            values["zone_multipliers"] = {str(k): float(v) for k, v in values["zone_multipliers"].items()}

        return cls(**values)


def _coerce(kind, item):
    return item if isinstance(item, kind) else kind(**item)


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PricingPolicy()
    p.validate()
    return p
