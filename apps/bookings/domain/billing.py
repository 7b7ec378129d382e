"""
Reservation pricing and overtime billing.

All functions are pure: "now" is always passed in by the caller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.value_objects import Money, TimeRange

ONE_HOUR = timedelta(hours=1)
CENT = Decimal("0.01")


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Quote:
    hourly_rate: Money
    total_hours: Decimal
    subtotal: Money
    service_fee: Money
    total: Money


def quote_reservation(hourly_rate: Decimal, window: TimeRange, service_fee_rate: Decimal, currency: str = "USD") -> Quote:
    """Price a window: renter pays the host rate per hour plus the service fee."""
    hours = window.hours
    subtotal = _round(Decimal(hourly_rate) * hours)
    fee = _round(subtotal * Decimal(service_fee_rate))
    return Quote(
        hourly_rate=Money(Decimal(hourly_rate), currency),
        total_hours=hours.quantize(CENT, rounding=ROUND_HALF_UP),
        subtotal=Money(subtotal, currency),
        service_fee=Money(fee, currency),
        total=Money(subtotal + fee, currency),
    )


def overtime_hours(grace_end: datetime, now: datetime) -> int:
    """Started hours past the grace period; zero before it ends."""
    elapsed = now - grace_end
    if elapsed <= timedelta(0):
        return 0
    return math.ceil(elapsed / ONE_HOUR)


def compute_overtime_charge(grace_end: datetime, now: datetime, hourly_rate: Decimal) -> Decimal:
    """
    Overtime owed at ``now``: ``ceil(minutes_elapsed / 60) * hourly_rate``.

    Non-decreasing in ``now`` for a fixed ``grace_end``; a later sample
    never lowers the charge.
    """
    return _round(Decimal(overtime_hours(grace_end, now)) * Decimal(hourly_rate))


def crossed_new_increment(previous: Decimal | None, current: Decimal, hourly_rate: Decimal) -> bool:
    """True when ``current`` reached a whole-rate step that ``previous`` had not."""
    rate = Decimal(hourly_rate)
    if rate <= 0:
        return False
    before = (previous or Decimal("0")) // rate
    return current // rate > before
