from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from apps.bookings.domain.billing import (
    compute_overtime_charge,
    crossed_new_increment,
    overtime_hours,
    quote_reservation,
)
from shared.domain.value_objects import TimeRange

RATE = Decimal("25.00")
GRACE_END = datetime(2030, 1, 7, 11, 15, tzinfo=dt_timezone.utc)


@pytest.mark.parametrize(
    "minutes,expected",
    [
        (-5, Decimal("0.00")),
        (0, Decimal("0.00")),
        (1, Decimal("25.00")),
        (31, Decimal("25.00")),
        (60, Decimal("25.00")),
        (61, Decimal("50.00")),
        (180, Decimal("75.00")),
    ],
)
def test_charge_is_started_hours_times_rate(minutes, expected):
    assert compute_overtime_charge(GRACE_END, GRACE_END + timedelta(minutes=minutes), RATE) == expected


def test_charge_never_decreases_as_time_moves_forward():
    samples = [
        compute_overtime_charge(GRACE_END, GRACE_END + timedelta(minutes=m), RATE)
        for m in range(-30, 6 * 60, 7)
    ]

    assert samples == sorted(samples)


def test_overtime_hours_counts_partial_hours():
    assert overtime_hours(GRACE_END, GRACE_END + timedelta(seconds=1)) == 1
    assert overtime_hours(GRACE_END, GRACE_END - timedelta(hours=1)) == 0


def test_crossed_new_increment():
    assert crossed_new_increment(Decimal("0"), Decimal("25.00"), RATE)
    assert crossed_new_increment(Decimal("25.00"), Decimal("50.00"), RATE)
    assert not crossed_new_increment(Decimal("25.00"), Decimal("25.00"), RATE)
    assert crossed_new_increment(None, Decimal("25.00"), RATE)


def test_quote_adds_service_fee():
    window = TimeRange(
        datetime(2030, 1, 7, 10, tzinfo=dt_timezone.utc),
        datetime(2030, 1, 7, 12, 30, tzinfo=dt_timezone.utc),
    )

    quote = quote_reservation(Decimal("10.00"), window, Decimal("0.10"))

    assert quote.total_hours == Decimal("2.50")
    assert quote.subtotal.amount == Decimal("25.00")
    assert quote.service_fee.amount == Decimal("2.50")
    assert quote.total.amount == Decimal("27.50")
    assert quote.total.currency == "USD"
