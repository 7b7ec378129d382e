from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.sweep import STAGES
from apps.bookings.tasks import activate_started_bookings, expire_unpaid_bookings, run_overstay_sweep
from apps.notifications.models import Notification


@pytest.mark.django_db
def test_activate_started_bookings(make_booking):
    now = timezone.now()
    started = make_booking(now - timedelta(minutes=5), now + timedelta(hours=1))
    upcoming = make_booking(now + timedelta(hours=2), now + timedelta(hours=3))

    result = activate_started_bookings()

    started.refresh_from_db()
    upcoming.refresh_from_db()
    assert result == {"activated": 1}
    assert started.status == Booking.Status.ACTIVE
    assert upcoming.status == Booking.Status.PAID


@pytest.mark.django_db
def test_expire_unpaid_bookings(make_booking):
    now = timezone.now()
    stale = make_booking(now + timedelta(hours=1), now + timedelta(hours=2), status=Booking.Status.HELD)
    fresh = make_booking(now + timedelta(hours=3), now + timedelta(hours=4), status=Booking.Status.HELD)
    Booking.objects.filter(pk=stale.pk).update(created_at=now - timedelta(minutes=30))

    result = expire_unpaid_bookings()

    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert result == {"expired": 1}
    assert stale.status == Booking.Status.CANCELED
    assert fresh.status == Booking.Status.HELD
    assert Notification.objects.filter(booking=stale, type=Notification.Type.BOOKING_CANCELED).exists()


@pytest.mark.django_db
def test_overstay_sweep_task_runs_eagerly(make_booking):
    now = timezone.now()
    booking = make_booking(now - timedelta(hours=2), now - timedelta(minutes=5), status=Booking.Status.ACTIVE)

    summary = run_overstay_sweep.delay().get()

    booking.refresh_from_db()
    assert set(summary) == set(STAGES) | {"errors"}
    assert summary["overstay_detected"] == 1
    assert booking.overstay_detected_at is not None
