"""
Purpose: Dynamic pricing orchestrator (the "one call" entry point for checkout).
What it does:
1. Pickup orders -> static pricing, no surge.
2. Fetches zone demand and rider supply from the store, draws the weather.
3. Computes the six surge factors and clamps their product.
4. Applies the multiplier to the delivery fee (and, capped, the service fee).
5. Any failure -> logged, static pricing returned.

Also serves the admin side: per-zone surge status and configuration updates
persisted to system_settings.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

from orders.models import ZONE_DEMAND_STATUSES, utcnow
from .factors import (
    clamp_multiplier,
    demand_multiplier,
    event_multiplier,
    local_time,
    peak_multiplier,
    rider_multiplier,
    round_half_up,
    simulate_weather,
    simulated_rider_supply,
)
from .models import (
    DeliveryType,
    DynamicPriceResult,
    PriceBreakdown,
    RiderSupply,
    SurgeFactors,
    SurgeInfo,
    WeatherCondition,
    ZoneSurgeStatus,
)
from .policy import PricingPolicy, default_pricing_policy

logger = logging.getLogger(__name__)

CONFIG_SETTING_KEY = "dynamic_pricing_config"

SURGE_MESSAGES = {
    "demand_multiplier": "High demand in area",
    "peak_hours": "Peak hour pricing",
    "rider_availability": "Limited riders available",
    "weather_condition": "Weather impact pricing",
    "event_multiplier": "Special event pricing",
}


def format_clock(moment: datetime) -> str:
    return moment.strftime("%I:%M %p").lstrip("0")


class DynamicPricingEngine:
    """
    Surge pricing over an injected store.

    weather_provider and clock are injectable so the random weather draw and
    the time of day can be pinned in tests.
    """

    def __init__(
        self,
        store: Any,
        policy: Optional[PricingPolicy] = None,
        weather_provider: Optional[Callable[[], WeatherCondition]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.policy = policy or default_pricing_policy()
        self.rng = rng or random.Random()
        self.weather_provider = weather_provider or (lambda: simulate_weather(self.rng, self.policy))
        self.clock = clock or utcnow

    @classmethod
    def from_store(cls, store: Any, **kwargs) -> "DynamicPricingEngine":
        """
        Build an engine using the configuration persisted by
        update_configuration(), falling back to defaults.
        """
        policy = None
        try:
            stored = store.get_setting(CONFIG_SETTING_KEY)
            if stored:
                policy = PricingPolicy.from_dict(stored)
                policy.validate()
        except Exception:
            logger.exception("Could not load stored pricing configuration, using defaults")
            policy = None
        return cls(store, policy=policy, **kwargs)

    #----------------
    # Checkout
    #----------------
    def calculate_dynamic_price(
        self,
        restaurant_id: str,
        zone_id: str,
        order_value: float,
        delivery_type: str = DeliveryType.DELIVERY,
    ) -> DynamicPriceResult:
        try:
            if DeliveryType(delivery_type) == DeliveryType.PICKUP:
                return self.static_pricing(order_value)

            now = self.clock()
            factors = self.calculate_surge_factors(zone_id, now)
            base_price = self.base_pricing(order_value, restaurant_id)
            multiplier = self.surge_multiplier(factors)

            return DynamicPriceResult(
                original_price=base_price,
                adjusted_price=self.apply_surge(base_price, multiplier),
                surge_info=SurgeInfo(
                    is_active=multiplier > 1.0,
                    multiplier=multiplier,
                    factors=factors,
                    display_message=self.surge_message(multiplier, factors),
                    estimated_normal_time=self.estimate_normal_time(factors, now),
                ),
            )
        except Exception:
            logger.exception(
                "Dynamic pricing calculation failed for restaurant %s zone %s", restaurant_id, zone_id
            )
            return self.static_pricing(order_value)

    def calculate_surge_factors(self, zone_id: str, now: Optional[datetime] = None) -> SurgeFactors:
        now = now or self.clock()
        local_now = local_time(now, self.policy)

        current_orders, history_orders = self.current_demand(zone_id, now)
        supply = self.rider_supply(zone_id, local_now.hour)
        weather = self.weather_provider()

        return SurgeFactors(
            demand_multiplier=demand_multiplier(current_orders, history_orders, self.policy),
            rider_availability=rider_multiplier(supply, self.policy),
            peak_hours=peak_multiplier(local_now, self.policy),
            weather_condition=weather.multiplier,
            zone_multiplier=self.policy.zone_multipliers.get(zone_id, 1.0),
            event_multiplier=event_multiplier(local_now, self.policy),
        )

    def surge_multiplier(self, factors: SurgeFactors) -> float:
        return clamp_multiplier(factors.combined(), self.policy)

    def current_demand(self, zone_id: str, now: datetime):
        """(orders in the demand window, all orders in the history window)"""
        current = self.store.count_zone_orders(
            zone_id,
            now - timedelta(hours=self.policy.demand_window_hours),
            statuses=ZONE_DEMAND_STATUSES,
        )
        history = self.store.count_zone_orders(
            zone_id,
            now - timedelta(days=self.policy.demand_history_days),
        )
        return current, history

    def rider_supply(self, zone_id: str, local_hour: int) -> RiderSupply:
        """
        Online riders in the zone; a rider holding an active order counts as
        busy. Zones with no tracked riders, or whose riders cannot be read,
        use the time-of-day simulation.
        """
        try:
            riders = self.store.list_online_riders(zone_id)
            counts = self.store.count_active_orders_by_rider([rider.id for rider in riders]) if riders else {}
        except Exception:
            logger.warning("Rider supply unavailable for zone %s, using simulated supply", zone_id, exc_info=True)
            return simulated_rider_supply(local_hour, self.policy)
        if not riders:
            return simulated_rider_supply(local_hour, self.policy)

        busy = sum(1 for rider in riders if counts.get(rider.id, 0) > 0)
        return RiderSupply(
            available_riders=len(riders) - busy,
            busy_riders=busy,
            total_riders=len(riders),
        )

    #----------------
    # Price breakdowns
    #----------------
    def base_pricing(self, order_value: float, restaurant_id: str) -> PriceBreakdown:
        restaurant = self.store.get_restaurant(restaurant_id)
        delivery_fee = (restaurant.delivery_fee if restaurant else None) or self.policy.base_delivery_fee
        service_fee = round_half_up(order_value * self.policy.base_service_fee_rate)
        return PriceBreakdown(
            subtotal=order_value,
            delivery_fee=delivery_fee,
            service_fee=service_fee,
            total=order_value + delivery_fee + service_fee,
        )

    def static_pricing(self, order_value: float) -> DynamicPriceResult:
        service_fee = round_half_up(order_value * self.policy.base_service_fee_rate)
        delivery_fee = self.policy.base_delivery_fee
        price = PriceBreakdown(
            subtotal=order_value,
            delivery_fee=delivery_fee,
            service_fee=service_fee,
            total=order_value + delivery_fee + service_fee,
        )
        return DynamicPriceResult(
            original_price=price,
            adjusted_price=price,
            surge_info=SurgeInfo(
                is_active=False,
                multiplier=1.0,
                factors=SurgeFactors(),
                display_message="Standard pricing",
                estimated_normal_time="Now",
            ),
        )

    def apply_surge(self, base_price: PriceBreakdown, multiplier: float) -> PriceBreakdown:
        delivery_fee = round_half_up(base_price.delivery_fee * multiplier)
        service_fee = round_half_up(
            base_price.service_fee * min(multiplier, self.policy.service_fee_surge_cap)
        )
        surge_amount = (delivery_fee - base_price.delivery_fee) + (service_fee - base_price.service_fee)
        return PriceBreakdown(
            subtotal=base_price.subtotal,
            delivery_fee=delivery_fee,
            service_fee=service_fee,
            total=base_price.subtotal + delivery_fee + service_fee,
            surge_amount=surge_amount,
        )

    #----------------
    # Customer messaging
    #----------------
    def surge_message(self, multiplier: float, factors: SurgeFactors) -> str:
        if multiplier <= 1.0:
            return "Standard pricing"
        percentage = round_half_up((multiplier - 1) * 100)
        label = SURGE_MESSAGES.get(factors.primary_factor(), "Dynamic pricing")
        return f"{label} (+{percentage}%)"

    def estimate_normal_time(self, factors: SurgeFactors, now: Optional[datetime] = None) -> str:
        local_now = local_time(now or self.clock(), self.policy)

        if factors.peak_hours > 1.0:
            for window in (self.policy.lunch_peak, self.policy.dinner_peak):
                if window.contains(local_now.hour):
                    # the hour after the window closes
                    return format_clock(local_now.replace(hour=window.end, minute=0) + timedelta(hours=1))

        if factors.demand_multiplier > self.policy.demand_recovery_threshold:
            return format_clock(local_now + timedelta(minutes=self.policy.demand_recovery_minutes))

        return "Soon"

    #----------------
    # Admin
    #----------------
    def current_surge_status(self) -> List[ZoneSurgeStatus]:
        now = self.clock()
        statuses = []
        for zone in self.policy.zone_multipliers:
            factors = self.calculate_surge_factors(zone, now)
            multiplier = self.surge_multiplier(factors)
            statuses.append(
                ZoneSurgeStatus(
                    zone=zone,
                    multiplier=multiplier,
                    is_active=multiplier > 1.0,
                    primary_factor=factors.primary_factor(),
                    message=self.surge_message(multiplier, factors),
                    factors=factors,
                )
            )
        return statuses

    def update_configuration(self, **changes) -> PricingPolicy:
        """
        Merge changes into the current policy, validate, persist, and only
        then swap it in. Invalid changes raise ValueError and leave the
        engine untouched.
        """
        merged = {**self.policy.to_dict(), **changes}
        policy = PricingPolicy.from_dict(merged)
        policy.validate()

        self.store.save_setting(CONFIG_SETTING_KEY, policy.to_dict(), self.clock())
        self.policy = policy
        logger.info("Dynamic pricing configuration updated: %s", sorted(changes))
        return policy
