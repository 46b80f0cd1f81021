"""
Purpose: Central configuration for restaurant capacity flags.
What it does:

Stores the defaults new capacity records start with and the knobs the
service uses when deciding whether a restaurant can take an order:

DEFAULT_PREP_TIME = 25 min
BUSY_THRESHOLD = 10 active orders
AUTO_REJECT_THRESHOLD = 20 active orders
MANUAL_OVERRIDE = 2 hours

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CapacityPolicy:
    """
    Central configuration for restaurant capacity.
    """

    # --- Defaults for new capacity records ---
    default_average_prep_time: float = 25.0
    default_busy_threshold: int = 10
    default_auto_reject_threshold: int = 20

    # --- Metrics ---
    # Average fulfilment time is taken over this many recent delivered orders.
    prep_time_sample_size: int = 10

    # --- Manual override ---
    default_override_hours: float = 2.0

    # --- Acceptance ---
    # Wait estimates are multiples of the average prep time.
    busy_wait_factor: float = 1.5
    reject_wait_factor: float = 2.0

    # --- History ---
    # Local clock for hour/day-of-week slots (Lagos, UTC+1).
    utc_offset_hours: int = 1
    # Order events landing on this minute also snapshot the hourly history.
    history_snapshot_minute: int = 0

    # --- Realtime ---
    channel_prefix: str = "restaurant:"
    update_event: str = "capacity_update"

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.default_average_prep_time <= 0:
            raise ValueError("default_average_prep_time must be > 0")

        if self.default_busy_threshold < 1:
            raise ValueError("default_busy_threshold must be >= 1")

        if self.default_auto_reject_threshold < self.default_busy_threshold:
            raise ValueError("default_auto_reject_threshold must be >= default_busy_threshold")

        if self.prep_time_sample_size < 1:
            raise ValueError("prep_time_sample_size must be >= 1")

        if self.default_override_hours <= 0:
            raise ValueError("default_override_hours must be > 0")

        if not 0 <= self.history_snapshot_minute <= 59:
            raise ValueError("history_snapshot_minute must be within 0-59")


def default_capacity_policy() -> CapacityPolicy:
    """
    Convenience factory for the default policy.
    """
    p = CapacityPolicy()
    p.validate()
    return p
