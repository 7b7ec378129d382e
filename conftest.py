from __future__ import annotations

from datetime import time
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from apps.bookings.models import Booking
from apps.spots.models import AvailabilityRule, Spot


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(username="owner", email="owner@example.com", password="pass")


@pytest.fixture
def renter(db):
    return get_user_model().objects.create_user(username="renter", email="renter@example.com", password="pass")


@pytest.fixture
def other_renter(db):
    return get_user_model().objects.create_user(username="renter2", email="renter2@example.com", password="pass")


@pytest.fixture
def spot(owner):
    spot = Spot.objects.create(
        owner=owner,
        title="Driveway on Elm St",
        address="12 Elm St",
        hourly_rate=Decimal("10.00"),
        timezone="UTC",
    )
    AvailabilityRule.objects.bulk_create(
        AvailabilityRule(spot=spot, day_of_week=day, start_time=time(0), end_time=time(23, 59)) for day in range(7)
    )
    return spot


@pytest.fixture
def make_booking(spot, renter):
    def _make(start_at, end_at, *, status=Booking.Status.PAID, **extra):
        extra.setdefault("spot", spot)
        extra.setdefault("renter", renter)
        extra.setdefault("hourly_rate", Decimal("10.00"))
        extra.setdefault("total_amount", Decimal("11.00"))
        extra.setdefault("payment_method_ref", "pm_card_visa")
        return Booking.objects.create(start_at=start_at, end_at=end_at, status=status, **extra)

    return _make
