"""
Purpose: Central configuration for rider scoring and assignment.
What it does:

Stores all tunable thresholds/weights for finding and ranking riders:

MAX_DISTANCE_KM = 10
WEIGHTS = proximity 0.30, availability 0.25, performance 0.20,
          workload 0.15, rating 0.10
MIN_SCORE = 50
MAX_ASSIGNMENT_ATTEMPTS = 3

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AssignmentPolicy:
    """
    Central configuration for rider candidate filtering, scoring and claiming.
    """

    # --- Geofence ---
    # Straight-line (haversine) radius around the restaurant.
    max_distance_km: float = 10.0

    # --- Capacity ---
    # Used when a rider profile does not specify max_concurrent_orders.
    default_max_concurrent_orders: int = 2

    # --- Sub-score shaping (all sub-scores live on a 0-100 scale) ---
    proximity_points_per_km: float = 10.0
    availability_penalty_per_order: float = 30.0
    workload_penalty_per_order: float = 40.0

    # Riders slower than this on average lose slow_delivery_penalty points
    # off their completion rate.
    slow_delivery_minutes: float = 30.0
    slow_delivery_penalty: float = 20.0

    # --- Weights ---
    proximity_weight: float = 0.30
    availability_weight: float = 0.25
    performance_weight: float = 0.20
    workload_weight: float = 0.15
    rating_weight: float = 0.10

    # --- Selection ---
    # Candidates must score strictly above this to be considered.
    min_score: float = 50.0
    # How many of the top candidates we try to claim the order for.
    max_attempts: int = 3

    # --- Metric windows / defaults for riders with no history ---
    performance_window_days: int = 30
    default_completion_rate: float = 80.0
    default_delivery_minutes: float = 30.0
    default_rating: float = 4.5
    rating_scale: float = 5.0

    # --- Analytics ---
    # "day" analytics start at local midnight (Lagos, UTC+1).
    utc_offset_hours: int = 1
    top_riders_limit: int = 5

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.max_distance_km <= 0:
            raise ValueError("max_distance_km must be > 0")

        if self.default_max_concurrent_orders < 1:
            raise ValueError("default_max_concurrent_orders must be >= 1")

        weights = (
            self.proximity_weight,
            self.availability_weight,
            self.performance_weight,
            self.workload_weight,
            self.rating_weight,
        )
        if any(weight < 0 for weight in weights):
            raise ValueError("score weights must be >= 0")
        if abs(sum(weights) - 1.0) > 1e-9:
            raise ValueError("score weights must sum to 1.0")

        if not 0 <= self.min_score <= 100:
            raise ValueError("min_score must be within 0-100")

        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        if self.rating_scale <= 0:
            raise ValueError("rating_scale must be > 0")


def default_assignment_policy() -> AssignmentPolicy:
    """
    Convenience factory for the default policy.
    """
    p = AssignmentPolicy()
    p.validate()
    return p
