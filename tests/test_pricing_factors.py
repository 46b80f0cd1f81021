from datetime import datetime, timedelta, timezone

import pytest

from pricing.factors import (
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
from pricing.models import RiderSupply, SurgeFactors
from pricing.policy import PricingPolicy, RushPattern, default_pricing_policy

from conftest import NOW

LAGOS = timezone(timedelta(hours=1))


class FixedDraw:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def policy():
    return default_pricing_policy()


def at(day, hour, month=3, year=2024):
    return datetime(year, month, day, hour, 0, tzinfo=LAGOS)


def test_local_time_is_utc_plus_one(policy):
    assert local_time(NOW, policy).hour == 10


@pytest.mark.parametrize(
    "current, history, expected",
    [
        (4, 168, 2.0),    # 4x the hourly average
        (3, 168, 1.75),   # exactly 3x is not above 3x
        (2.2, 168, 1.5),
        (1.6, 168, 1.25),
        (1, 168, 1.0),
        (0, 168, 0.9),
        (10, 0, 1.0),     # no history, no signal
    ],
)
def test_demand_tiers(policy, current, history, expected):
    assert demand_multiplier(current, history, policy) == expected


@pytest.mark.parametrize(
    "available, expected",
    [(2, 2.0), (4, 1.5), (6, 1.25), (8, 1.0), (10, 0.95)],
)
def test_rider_shortage_tiers(policy, available, expected):
    supply = RiderSupply(available_riders=available, busy_riders=10 - available, total_riders=10)
    assert rider_multiplier(supply, policy) == expected


def test_peak_hours_on_a_weekday(policy):
    # 2024-03-06 is a Wednesday
    assert peak_multiplier(at(6, 10), policy) == 1.0
    assert peak_multiplier(at(6, 12), policy) == 1.5
    # lunch owns the overlapping hour
    assert peak_multiplier(at(6, 14), policy) == 1.5
    assert peak_multiplier(at(6, 16), policy) == 0.9
    assert peak_multiplier(at(6, 19), policy) == 1.75


def test_weekend_peak_takes_precedence(policy):
    # 2024-03-09 is a Saturday
    assert peak_multiplier(at(9, 19), policy) == 1.3
    assert peak_multiplier(at(9, 9), policy) == 1.0


def test_events(policy):
    assert event_multiplier(at(25, 10, month=12), policy) == 2.0
    # Friday night out
    assert event_multiplier(at(8, 21), policy) == 1.4
    assert event_multiplier(at(8, 19), policy) == 1.0
    # Wednesday night is quiet
    assert event_multiplier(at(6, 21), policy) == 1.0


@pytest.mark.parametrize(
    "draw, condition",
    [(0.0, "clear"), (0.6, "clear"), (0.61, "light_rain"), (0.9, "heavy_rain"), (0.96, "storm")],
)
def test_weather_draw_is_weighted(policy, draw, condition):
    assert simulate_weather(FixedDraw(draw), policy).condition == condition


def test_simulated_supply_follows_rush_patterns(policy):
    quiet = simulated_rider_supply(10, policy)
    evening = simulated_rider_supply(19, policy)
    late = simulated_rider_supply(23, policy)

    assert (quiet.available_riders, quiet.busy_riders, quiet.total_riders) == (20, 0, 30)
    assert (evening.available_riders, evening.busy_riders) == (10, 5)
    assert late.available_riders == 6


def test_rush_pattern_wraps_midnight():
    late_night = RushPattern(22, 6, 0.3)

    assert late_night.contains(23)
    assert late_night.contains(3)
    assert not late_night.contains(10)


def test_clamp_and_rounding(policy):
    assert clamp_multiplier(3.4, policy) == 2.5
    assert clamp_multiplier(0.5, policy) == 0.8
    assert clamp_multiplier(1.2, policy) == 1.2
    assert round_half_up(2.5) == 3
    assert round_half_up(1.49) == 1


def test_primary_factor_ignores_zone_and_prefers_earliest():
    assert SurgeFactors(zone_multiplier=1.2).primary_factor() == "demand_multiplier"
    assert SurgeFactors(peak_hours=1.5, weather_condition=1.5).primary_factor() == "peak_hours"
    assert SurgeFactors(rider_availability=2.0, peak_hours=1.5).primary_factor() == "rider_availability"


def test_policy_survives_persistence(policy):
    stored = policy.to_dict()

    assert PricingPolicy.from_dict(stored) == policy
    assert PricingPolicy.from_dict({"max_surge_multiplier": 3.0}).max_surge_multiplier == 3.0


def test_policy_rejects_unknown_and_invalid_settings():
    with pytest.raises(ValueError):
        PricingPolicy.from_dict({"surge_everything": True})

    with pytest.raises(ValueError):
        PricingPolicy(min_discount_multiplier=1.2).validate()

    with pytest.raises(ValueError):
        PricingPolicy(zone_multipliers={"isolo": 0}).validate()
