"""
Fare calculator
===============

Formula
-------
Fare = Price_Per_Minute x Minutes + Base_Price

* **Minutes** = whole minutes of the trip, floored, never less than 1
  (a 10-second trip is billed as one minute).
* **Price_Per_Minute** comes from the vehicle's tariff, **Base_Price** from the
  vehicle itself; both are read at settlement time, not at trip start.

No rounding is applied to the result.  Complexity: O(1).
"""

from __future__ import annotations

from datetime import timedelta

MINIMUM_BILLED_MINUTES = 1


def billable_minutes(elapsed: timedelta) -> int:
    """Floor *elapsed* to whole minutes, clamped to the one-minute minimum."""
    return max(MINIMUM_BILLED_MINUTES, int(elapsed.total_seconds() // 60))


def calculate_fare(
    price_per_minute: float, minutes: int, base_price: float
) -> float:
    return price_per_minute * minutes + base_price
