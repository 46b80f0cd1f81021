"""
Purpose: Hourly capacity history and busy-period prediction.
What it does:
- Folds the order count for an (hour, day_of_week) slot into the stored
  history as a rolling average plus the peak seen.
- Flags slots whose average sits above mean + one standard deviation of all
  slots as predicted busy periods.

Rule: Pure functions over HistoricalSlot lists; the service does the I/O.
"""

from typing import List

import numpy as np

from .models import BusyPeriod, HistoricalSlot


def update_slot(history: List[HistoricalSlot], hour: int, day_of_week: int, orders: int) -> List[HistoricalSlot]:
    """
    Returns a new history list with the slot updated (or appended).
    The rolling average halves the weight of everything already stored.
    """
    updated = list(history)
    for index, slot in enumerate(updated):
        if slot.hour == hour and slot.day_of_week == day_of_week:
            updated[index] = HistoricalSlot(
                hour=hour,
                day_of_week=day_of_week,
                average_orders=(slot.average_orders + orders) / 2,
                peak_capacity=max(slot.peak_capacity, orders),
            )
            return updated

    updated.append(HistoricalSlot(hour=hour, day_of_week=day_of_week, average_orders=orders, peak_capacity=orders))
    return updated


def predict_busy_periods(history: List[HistoricalSlot]) -> List[BusyPeriod]:
    if not history:
        return []

    averages = np.array([slot.average_orders for slot in history], dtype=float)
    # population standard deviation
    threshold = float(averages.mean() + averages.std())
    if threshold <= 0:
        return []

    busy = [
        BusyPeriod(
            hour=slot.hour,
            day_of_week=slot.day_of_week,
            predicted_orders=slot.average_orders,
            confidence=min(slot.average_orders / threshold, 1.0) * 100,
        )
        for slot in history
        if slot.average_orders > threshold
    ]
    busy.sort(key=lambda period: period.predicted_orders, reverse=True)
    return busy
