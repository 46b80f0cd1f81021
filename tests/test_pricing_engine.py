import itertools
from datetime import timedelta

import pytest

from datastore import InMemoryStore, StoreError
from orders.models import OrderStatus
from pricing import CONFIG_SETTING_KEY, DynamicPricingEngine, SurgeFactors, WeatherCondition, default_pricing_policy

from conftest import NOW, make_order, make_rider


def clear_skies():
    return WeatherCondition("clear", 1.0)


def busy_isolo(store):
    """
    A week of steady isolo orders (one an hour) plus four in the last few
    minutes, and ten isolo riders of whom two are out on a delivery.
    """
    for i in range(168):
        store.add_order(
            make_order(f"hist_{i}", status=OrderStatus.DELIVERED, minutes_ago=120 + i * 50, delivery_zone="isolo")
        )
    for i in range(4):
        store.add_order(make_order(f"now_{i}", delivery_zone="isolo"))

    for i in range(10):
        store.add_rider(make_rider(f"rider_{i}", 1.0, preferred_zones=["isolo"]))
    for i in range(2):
        store.add_order(make_order(f"out_{i}", status=OrderStatus.PICKED_UP, rider_id=f"rider_{i}"))


@pytest.fixture
def engine(store, clock):
    return DynamicPricingEngine(store, weather_provider=clear_skies, clock=clock)


def test_high_demand_surge(store, engine):
    busy_isolo(store)

    result = engine.calculate_dynamic_price("rest_1", "isolo", 5000)

    factors = result.surge_info.factors
    assert factors.demand_multiplier == 2.0
    assert factors.rider_availability == 1.0
    assert factors.peak_hours == 1.0

    assert result.original_price.delivery_fee == 600
    assert result.original_price.service_fee == 500

    adjusted = result.adjusted_price
    assert adjusted.delivery_fee == 1200
    # service fee surge is capped at 1.5x
    assert adjusted.service_fee == 750
    assert adjusted.total == 6950
    assert adjusted.surge_amount == 850

    assert result.surge_info.is_active
    assert result.surge_info.multiplier == 2.0
    assert result.surge_info.display_message == "High demand in area (+100%)"
    assert result.surge_info.estimated_normal_time == "10:45 AM"


def test_quiet_afternoon_is_discounted_to_the_floor(store):
    # 16:00 in Lagos: afternoon lull, nobody ordering, riders idle, mainland discount
    for i in range(20):
        store.add_order(
            make_order(f"hist_{i}", status=OrderStatus.DELIVERED, minutes_ago=600 + i * 60, delivery_zone="mainland")
        )
    for i in range(5):
        store.add_rider(make_rider(f"rider_{i}", 1.0, preferred_zones=["mainland"]))
    engine = DynamicPricingEngine(store, weather_provider=clear_skies, clock=lambda: NOW + timedelta(hours=6))

    result = engine.calculate_dynamic_price("rest_1", "mainland", 5000)

    assert result.surge_info.factors.demand_multiplier == 0.9
    assert result.surge_info.factors.rider_availability == 0.95
    assert result.surge_info.multiplier == 0.8
    assert not result.surge_info.is_active
    assert result.surge_info.display_message == "Standard pricing"
    assert result.adjusted_price.delivery_fee == 480
    assert result.adjusted_price.service_fee == 400
    assert result.adjusted_price.surge_amount == -220


def test_multiplier_is_capped(engine):
    factors = SurgeFactors(demand_multiplier=2.0, peak_hours=1.75, weather_condition=2.0)

    assert engine.surge_multiplier(factors) == 2.5


POLICY = default_pricing_policy()
DEMAND_VALUES = sorted({m for _, m in POLICY.demand_tiers} | {POLICY.low_demand_multiplier, 1.0})
RIDER_VALUES = sorted({m for _, m in POLICY.rider_shortage_tiers} | {POLICY.rider_abundance_multiplier, 1.0})
PEAK_VALUES = sorted({
    w.multiplier for w in (POLICY.weekend_peak, POLICY.lunch_peak, POLICY.dinner_peak, POLICY.afternoon_lull)
} | {1.0})
WEATHER_VALUES = sorted({s.multiplier for s in POLICY.weather_scenarios})
ZONE_VALUES = sorted(set(POLICY.zone_multipliers.values()) | {1.0})
EVENT_VALUES = sorted({h.multiplier for h in POLICY.holidays} | {POLICY.nightlife_window.multiplier, 1.0})


@pytest.mark.parametrize("demand", DEMAND_VALUES)
def test_every_factor_combination_stays_within_limits(engine, demand):
    for riders, peak, weather, zone, event in itertools.product(
        RIDER_VALUES, PEAK_VALUES, WEATHER_VALUES, ZONE_VALUES, EVENT_VALUES
    ):
        factors = SurgeFactors(
            demand_multiplier=demand,
            rider_availability=riders,
            peak_hours=peak,
            weather_condition=weather,
            zone_multiplier=zone,
            event_multiplier=event,
        )
        multiplier = engine.surge_multiplier(factors)
        assert 0.8 <= multiplier <= 2.5, factors


def test_pickup_is_never_surged(store, engine):
    busy_isolo(store)

    result = engine.calculate_dynamic_price("rest_1", "isolo", 5000, delivery_type="pickup")

    assert result.surge_info.multiplier == 1.0
    assert result.surge_info.display_message == "Standard pricing"
    assert result.surge_info.estimated_normal_time == "Now"
    assert result.adjusted_price.delivery_fee == 500
    assert result.adjusted_price.total == 6000


class FlakyStore(InMemoryStore):
    def count_zone_orders(self, zone_id, since, statuses=None):
        raise StoreError("statement timeout")


def test_store_failure_falls_back_to_static_pricing(restaurant, clock):
    store = FlakyStore()
    store.add_restaurant(restaurant)
    engine = DynamicPricingEngine(store, weather_provider=clear_skies, clock=clock)

    result = engine.calculate_dynamic_price("rest_1", "isolo", 3000)

    assert not result.surge_info.is_active
    assert result.adjusted_price.delivery_fee == 500
    assert result.adjusted_price.service_fee == 300
    assert result.adjusted_price.total == 3800


class RiderlessStore(InMemoryStore):
    def list_online_riders(self, zone_id=None):
        raise StoreError("rider_profiles: connection reset")


def test_unreadable_riders_only_lose_the_supply_factor(restaurant, clock):
    store = RiderlessStore()
    store.add_restaurant(restaurant)
    busy_isolo(store)
    engine = DynamicPricingEngine(store, weather_provider=clear_skies, clock=clock)

    supply = engine.rider_supply("isolo", 19)
    result = engine.calculate_dynamic_price("rest_1", "isolo", 5000)

    assert (supply.total_riders, supply.available_riders) == (30, 10)
    assert result.surge_info.factors.demand_multiplier == 2.0
    assert result.surge_info.is_active


def test_zone_without_riders_uses_simulated_supply(engine):
    supply = engine.rider_supply("lekki", 19)

    assert supply.total_riders == 30
    assert supply.available_riders == 10


def test_normal_time_during_dinner_peak(engine):
    factors = SurgeFactors(peak_hours=1.75)

    # 19:00 local, the dinner peak ends at 21:00
    assert engine.estimate_normal_time(factors, NOW + timedelta(hours=9)) == "10:00 PM"
    assert engine.estimate_normal_time(SurgeFactors(), NOW) == "Soon"


def test_result_payload_shape(store, engine):
    payload = engine.calculate_dynamic_price("rest_1", "isolo", 5000).to_dict()

    assert "surge_amount" not in payload["original_price"]
    assert "surge_amount" in payload["adjusted_price"]
    assert set(payload["surge_info"]["factors"]) == {
        "demand_multiplier",
        "rider_availability",
        "peak_hours",
        "weather_condition",
        "zone_multiplier",
        "event_multiplier",
    }


def test_surge_status_for_every_zone(engine):
    statuses = {status.zone: status for status in engine.current_surge_status()}

    assert set(statuses) == {"isolo", "ikeja", "vi", "lekki", "mainland"}
    # 10:00 with no tracked riders: 20 of 30 simulated riders free
    isolo = statuses["isolo"]
    assert isolo.multiplier == 1.25
    assert isolo.primary_factor == "rider_availability"
    assert isolo.message == "Limited riders available (+25%)"
    assert statuses["vi"].multiplier == pytest.approx(1.5)


def test_configuration_update_is_persisted(store, engine):
    engine.update_configuration(max_surge_multiplier=3.0, zone_multipliers={"isolo": 1.4})

    assert store.get_setting(CONFIG_SETTING_KEY)["max_surge_multiplier"] == 3.0

    reloaded = DynamicPricingEngine.from_store(store)
    assert reloaded.policy.max_surge_multiplier == 3.0
    assert reloaded.policy.zone_multipliers == {"isolo": 1.4}


def test_invalid_configuration_leaves_engine_untouched(store, engine):
    before = engine.policy

    with pytest.raises(ValueError):
        engine.update_configuration(min_discount_multiplier=1.2)
    with pytest.raises(ValueError):
        engine.update_configuration(free_delivery=True)

    assert engine.policy is before
    assert store.get_setting(CONFIG_SETTING_KEY) is None


def test_broken_stored_configuration_uses_defaults(store):
    store.save_setting(CONFIG_SETTING_KEY, {"not_a_setting": 1})

    engine = DynamicPricingEngine.from_store(store)

    assert engine.policy.max_surge_multiplier == 2.5
