"""
Overstay sweep.

Runs every ``OVERSTAY_SWEEP_INTERVAL_SECONDS`` from Celery beat and may
overlap a previous run that overran. Each stage selects candidates and then
advances every one of them with a conditional update that repeats the
selection guard; notifications are only sent for rows this run actually
changed, so two concurrent runs never notify twice.

Stage order:
    1. ending soon       notify renter once before the end time
    2. clean completion  ended long enough ago without an overstay
    3. new overstay      start the grace period
    4. grace expired     owner may now pick an action
    5. charging          grow the overtime charge
    6. overstay done     finalize the charge and complete
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from django.conf import settings  # type: ignore
from django.db.models import Q, QuerySet  # type: ignore
from django.utils import timezone  # type: ignore

from apps.notifications import services as notifications

from .domain.billing import compute_overtime_charge, crossed_new_increment
from .domain.overstay import ACTION_CHARGING, ACTION_PENDING, grace_window
from .models import Booking
from .services import capture_overtime

logger = logging.getLogger(__name__)

STAGES = (
    "ending_soon",
    "completed_clean",
    "overstay_detected",
    "grace_expired",
    "charges_updated",
    "completed_overstay",
)


def _minutes(name: str) -> timedelta:
    return timedelta(minutes=getattr(settings, name))


def _rate() -> Decimal:
    return Decimal(str(settings.OVERSTAY_HOURLY_RATE))


def _sweepable() -> QuerySet:
    return Booking.objects.filter(status__in=Booking.SWEEP_STATUSES)


def _process(
    stage: str,
    candidates: Iterable[Booking],
    advance: Callable[[Booking], bool],
    summary: dict[str, int],
) -> None:
    for booking in candidates:
        try:
            if advance(booking):
                summary[stage] += 1
        except Exception as e:
            summary["errors"] += 1
            logger.error(f"Overstay sweep stage {stage} failed for booking {booking.pk}: {e}", exc_info=True)


# ============================================================================
# STAGES
# ============================================================================

def _ending_soon(now: datetime, summary: dict[str, int]) -> None:
    guard = Q(
        end_at__gt=now,
        end_at__lte=now + _minutes("OVERSTAY_ENDING_SOON_MINUTES"),
        overstay_detected_at__isnull=True,
        ending_soon_notified_at__isnull=True,
    )

    def advance(booking: Booking) -> bool:
        if not _sweepable().filter(guard, pk=booking.pk).update(ending_soon_notified_at=now):
            return False
        notifications.notify_ending_soon(booking)
        return True

    _process("ending_soon", _sweepable().filter(guard).select_related("spot", "renter"), advance, summary)


def _clean_completion(now: datetime, summary: dict[str, int]) -> None:
    guard = Q(
        end_at__lt=now - _minutes("OVERSTAY_CLEAN_COMPLETION_MINUTES"),
        overstay_detected_at__isnull=True,
        departed_at__isnull=True,
    )

    def advance(booking: Booking) -> bool:
        updated = _sweepable().filter(guard, pk=booking.pk).update(
            status=Booking.Status.COMPLETED,
            updated_at=now,
        )
        if not updated:
            return False
        booking.status = Booking.Status.COMPLETED
        logger.info(f"Booking {booking.pk} completed on time")
        notifications.notify_booking_completed(booking)
        return True

    candidates = _sweepable().filter(guard).select_related("spot", "spot__owner", "renter")
    _process("completed_clean", candidates, advance, summary)


def _new_overstay(now: datetime, summary: dict[str, int]) -> None:
    lookback = now - timedelta(hours=settings.OVERSTAY_LOOKBACK_HOURS)
    guard = Q(end_at__lt=now, end_at__gt=lookback, overstay_detected_at__isnull=True)
    detected_at, grace_end = grace_window(now, settings.OVERSTAY_GRACE_MINUTES)

    def advance(booking: Booking) -> bool:
        updated = _sweepable().filter(guard, pk=booking.pk).update(
            overstay_detected_at=detected_at,
            overstay_grace_end=grace_end,
            updated_at=now,
        )
        if not updated:
            return False
        booking.overstay_detected_at = detected_at
        booking.overstay_grace_end = grace_end
        logger.warning(f"Overstay detected for booking {booking.pk}, grace period ends {grace_end.isoformat()}")
        notifications.notify_overstay_detected(booking)
        return True

    candidates = _sweepable().filter(guard).select_related("spot", "spot__owner", "renter")
    _process("overstay_detected", candidates, advance, summary)


def _grace_expired(now: datetime, summary: dict[str, int]) -> None:
    lookback = now - timedelta(hours=settings.OVERSTAY_LOOKBACK_HOURS)
    guard = Q(
        overstay_detected_at__isnull=False,
        overstay_grace_end__lt=now,
        overstay_grace_end__gt=lookback,
        overstay_action__isnull=True,
    )

    def advance(booking: Booking) -> bool:
        updated = _sweepable().filter(guard, pk=booking.pk).update(
            overstay_action=ACTION_PENDING,
            updated_at=now,
        )
        if not updated:
            return False
        booking.overstay_action = ACTION_PENDING
        logger.info(f"Grace period expired for booking {booking.pk}, waiting for owner action")
        notifications.notify_grace_expired(booking)
        return True

    candidates = _sweepable().filter(guard).select_related("spot", "spot__owner", "renter")
    _process("grace_expired", candidates, advance, summary)


def _charging(now: datetime, summary: dict[str, int]) -> None:
    guard = Q(overstay_action=ACTION_CHARGING, overstay_grace_end__lt=now)
    rate = _rate()

    def advance(booking: Booking) -> bool:
        previous = booking.overstay_charge_amount
        charge = compute_overtime_charge(booking.overstay_grace_end, now, rate)
        if charge <= previous:
            return False
        # Only the run that moves the stored value from ``previous`` gets to notify
        updated = _sweepable().filter(guard, pk=booking.pk, overstay_charge_amount=previous).update(
            overstay_charge_amount=charge,
            updated_at=now,
        )
        if not updated:
            return False
        booking.overstay_charge_amount = charge
        logger.info(f"Overtime for booking {booking.pk} raised from {previous} to {charge}")
        if crossed_new_increment(previous, charge, rate):
            notifications.notify_overtime_increment(booking, charge)
        return True

    candidates = _sweepable().filter(guard).select_related("spot", "renter")
    _process("charges_updated", candidates, advance, summary)


def _overstay_completion(now: datetime, summary: dict[str, int]) -> None:
    guard = Q(
        overstay_detected_at__isnull=False,
        overstay_action=ACTION_CHARGING,
        end_at__lt=now - _minutes("OVERSTAY_COMPLETION_MINUTES"),
    )
    rate = _rate()

    def advance(booking: Booking) -> bool:
        final_charge = max(
            booking.overstay_charge_amount,
            compute_overtime_charge(booking.overstay_grace_end, now, rate),
        )
        updated = _sweepable().filter(guard, pk=booking.pk).update(
            status=Booking.Status.COMPLETED,
            overstay_charge_amount=final_charge,
            updated_at=now,
        )
        if not updated:
            return False
        booking.status = Booking.Status.COMPLETED
        booking.overstay_charge_amount = final_charge
        logger.info(f"Booking {booking.pk} completed with overtime {final_charge}")
        capture_overtime(booking, final_charge)
        notifications.notify_booking_completed(booking, overtime=final_charge)
        return True

    candidates = _sweepable().filter(guard).select_related("spot", "spot__owner", "renter")
    _process("completed_overstay", candidates, advance, summary)


def run_overstay_sweep(now: datetime | None = None) -> dict[str, int]:
    """
    Run every sweep stage once.

    Returns:
        dict: rows advanced per stage plus ``errors``; never raises for a
        single reservation's failure
    """
    now = now or timezone.now()
    summary = {stage: 0 for stage in STAGES}
    summary["errors"] = 0

    _ending_soon(now, summary)
    _clean_completion(now, summary)
    _new_overstay(now, summary)
    _grace_expired(now, summary)
    _charging(now, summary)
    _overstay_completion(now, summary)

    if any(summary.values()):
        logger.info(f"Overstay sweep at {now.isoformat()}: {summary}")
    return summary
