"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from apps.notifications import services as notifications

from .models import Booking
from .sweep import run_overstay_sweep as _run_overstay_sweep

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat)
# ============================================================================

@shared_task(name="bookings.run_overstay_sweep")
def run_overstay_sweep() -> dict[str, int]:
    """
    Overstay detection, grace handling, overtime billing and completion.

    Runs every OVERSTAY_SWEEP_INTERVAL_SECONDS.

    Returns:
        dict: rows advanced per stage and the number of per-item errors
    """
    return _run_overstay_sweep(timezone.now())


@shared_task(name="bookings.activate_started_bookings")
def activate_started_bookings() -> dict[str, int]:
    """
    Move paid reservations to ACTIVE once their start time has come.

    Returns:
        dict: {"activated": number of reservations activated}
    """
    now = timezone.now()
    activated = Booking.objects.filter(
        status=Booking.Status.PAID,
        start_at__lte=now,
        end_at__gt=now,
    ).update(status=Booking.Status.ACTIVE, updated_at=now)

    if activated > 0:
        logger.info(f"Activated {activated} started bookings")

    return {"activated": activated}


@shared_task(name="bookings.expire_unpaid_bookings")
def expire_unpaid_bookings() -> dict[str, int]:
    """
    Cancel HELD reservations whose payment never completed.

    A reservation stays HELD only while its payment is in flight; one older
    than the hold TTL is abandoned and its slot is released.

    Returns:
        dict: {"expired": number of reservations canceled}
    """
    now = timezone.now()
    cutoff = now - timedelta(minutes=settings.BOOKING_HOLD_TTL_MINUTES)
    expired_count = 0

    stale_bookings = Booking.objects.filter(
        status=Booking.Status.HELD,
        created_at__lte=cutoff,
    ).select_related("spot", "renter")

    for booking in stale_bookings:
        try:
            updated = Booking.objects.filter(pk=booking.pk, status=Booking.Status.HELD).update(
                status=Booking.Status.CANCELED,
                cancellation_reason="Payment was not completed in time",
                updated_at=now,
            )
            if not updated:
                continue

            expired_count += 1
            logger.info(f"Booking {booking.pk} expired unpaid. Renter: {booking.renter_id}, Spot: {booking.spot_id}")
            notifications.notify_booking_canceled(booking, "payment was not completed in time")
        except Exception as e:
            logger.error(f"Error expiring booking {booking.pk}: {e}", exc_info=True)

    if expired_count > 0:
        logger.info(f"Expired {expired_count} unpaid bookings")

    return {"expired": expired_count}
