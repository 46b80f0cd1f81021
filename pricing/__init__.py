"""
Dynamic pricing package.

Public API:
- Engine: DynamicPricingEngine (checkout pricing, admin surge status/config)
- Policy: PricingPolicy, default_pricing_policy
- Models: SurgeFactors, PriceBreakdown, SurgeInfo, DynamicPriceResult
"""
from .engine import CONFIG_SETTING_KEY, DynamicPricingEngine
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

__all__ = [
    "CONFIG_SETTING_KEY",
    "DynamicPricingEngine",
    "DeliveryType",
    "DynamicPriceResult",
    "PriceBreakdown",
    "RiderSupply",
    "SurgeFactors",
    "SurgeInfo",
    "WeatherCondition",
    "ZoneSurgeStatus",
    "PricingPolicy",
    "default_pricing_policy",
]
