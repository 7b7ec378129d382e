from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from shared.domain.value_objects import Money, TimeRange

T0 = datetime(2030, 1, 7, 10, tzinfo=dt_timezone.utc)


def test_money_quantizes_to_cents():
    assert Money(Decimal("10.005")).amount == Decimal("10.01")
    assert Money(3).amount == Decimal("3.00")


def test_money_rejects_negative_and_unknown_currency():
    with pytest.raises(ValueError):
        Money(Decimal("-1"))
    with pytest.raises(ValueError):
        Money(Decimal("1"), "KZT")


def test_money_arithmetic():
    assert Money(Decimal("10")) + Money(Decimal("1.50")) == Money(Decimal("11.50"))
    assert Money(Decimal("10")) * Decimal("2.5") == Money(Decimal("25"))
    with pytest.raises(ValueError):
        Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")


def test_time_range_is_half_open():
    window = TimeRange(T0, T0 + timedelta(hours=1))

    assert window.contains(T0)
    assert not window.contains(T0 + timedelta(hours=1))
    assert not window.overlaps_with(TimeRange(T0 + timedelta(hours=1), T0 + timedelta(hours=2)))
    assert window.overlaps_with(TimeRange(T0 + timedelta(minutes=59), T0 + timedelta(hours=2)))


def test_time_range_rejects_empty_window():
    with pytest.raises(ValueError):
        TimeRange(T0, T0)


def test_time_range_hours():
    assert TimeRange(T0, T0 + timedelta(minutes=90)).hours == Decimal("1.5")
