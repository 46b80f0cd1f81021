"""
Purpose: Pure surge factor rules.
What it does:
Turns demand counts, rider supply, the local clock and the weather into the
individual multipliers, and provides the clamping and rounding the engine
applies to them.

Rule: No queries, no randomness of its own. Inputs in, multiplier out.
"""

import math
import random
from datetime import datetime, timedelta, timezone

from .models import RiderSupply, WeatherCondition
from .policy import PricingPolicy


def local_time(now: datetime, policy: PricingPolicy) -> datetime:
    """Aware UTC (or any aware) datetime -> marketplace local time."""
    return now.astimezone(timezone(timedelta(hours=policy.utc_offset_hours)))


def round_half_up(value: float) -> int:
    # same as JS Math.round for the non-negative amounts we price
    return int(math.floor(value + 0.5))


def clamp_multiplier(value: float, policy: PricingPolicy) -> float:
    return max(policy.min_discount_multiplier, min(policy.max_surge_multiplier, value))


def demand_multiplier(current_orders: int, history_orders: int, policy: PricingPolicy) -> float:
    """
    Compares orders in the last hour against the hourly average over the
    history window. No history means no signal.
    """
    hourly_average = history_orders / (policy.demand_history_days * 24)
    if hourly_average == 0:
        return 1.0

    ratio = current_orders / hourly_average
    for threshold, multiplier in policy.demand_tiers:
        if ratio > threshold:
            return multiplier
    if ratio < policy.low_demand_ratio:
        return policy.low_demand_multiplier
    return 1.0


def rider_multiplier(supply: RiderSupply, policy: PricingPolicy) -> float:
    ratio = supply.availability_ratio
    for threshold, multiplier in policy.rider_shortage_tiers:
        if ratio < threshold:
            return multiplier
    if ratio > policy.rider_abundance_ratio:
        return policy.rider_abundance_multiplier
    return 1.0


def peak_multiplier(local_now: datetime, policy: PricingPolicy) -> float:
    hour = local_now.hour

    if local_now.weekday() in policy.weekend_days and policy.weekend_peak.contains(hour):
        return policy.weekend_peak.multiplier

    for window in (policy.lunch_peak, policy.dinner_peak):
        if window.contains(hour):
            return window.multiplier

    # lunch owns 14:00, so the lull only discounts 15-17
    if policy.afternoon_lull.contains(hour):
        return policy.afternoon_lull.multiplier

    return 1.0


def event_multiplier(local_now: datetime, policy: PricingPolicy) -> float:
    for holiday in policy.holidays:
        if holiday.month == local_now.month and holiday.day == local_now.day:
            return holiday.multiplier

    if local_now.weekday() in policy.nightlife_days and policy.nightlife_window.contains(local_now.hour):
        return policy.nightlife_window.multiplier

    return 1.0


def simulate_weather(rng: random.Random, policy: PricingPolicy) -> WeatherCondition:
    """
    Weighted draw over the policy's weather scenarios.
    """
    total = sum(scenario.weight for scenario in policy.weather_scenarios)
    draw = rng.random() * total
    cumulative = 0.0
    for scenario in policy.weather_scenarios:
        cumulative += scenario.weight
        if draw <= cumulative:
            return WeatherCondition(scenario.condition, scenario.multiplier)

    first = policy.weather_scenarios[0]
    return WeatherCondition(first.condition, first.multiplier)


def simulated_rider_supply(hour: int, policy: PricingPolicy) -> RiderSupply:
    """
    Time-of-day rider pool for zones with no tracked riders. The tightest
    matching rush pattern wins.
    """
    ratio = min(
        [pattern.availability for pattern in policy.rush_patterns if pattern.contains(hour)],
        default=1.0,
    )
    return RiderSupply(
        available_riders=math.floor(policy.simulated_available_riders * ratio),
        busy_riders=math.floor(policy.simulated_busy_riders * (1 - ratio)),
        total_riders=policy.simulated_total_riders,
    )
