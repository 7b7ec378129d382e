"""Domain services for reservation workflows.

Every function takes an optional ``now`` so callers and tests control the
clock. Writes on existing reservations are conditional updates: the
``filter(...)`` repeats the state the decision was made on, and a zero row
count means someone else got there first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.utils import timezone  # type: ignore

from apps.notifications import services as notifications
from apps.payments import gateway
from apps.spots.models import Spot
from shared.application.message_bus import message_bus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import TimeRange

from . import holds
from .domain.availability import (
    CONFLICT_SCHEDULE,
    AvailabilityResult,
    Conflict,
    DateOverride,
    OccupiedWindow,
    WeeklyRule,
    evaluate_availability,
    local_dates,
)
from .domain.billing import compute_overtime_charge, quote_reservation
from .domain.events import BookingCommitted, BookingExtended, HoldCreated
from .domain.overstay import ACTION_CHARGING, ACTION_PENDING, ACTION_TOWING, action_error, can_extend
from .exceptions import (
    AvailabilityConflict,
    BookingError,
    InvalidTimeRange,
    NotFound,
    PaymentFailure,
    PaymentRequired,
    PreconditionFailed,
)
from .models import Booking

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from django.contrib.auth.models import User  # type: ignore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtensionResult:
    booking: Booking
    end_at: datetime
    amount_charged: Decimal


# ============================================================================
# HELPERS
# ============================================================================

def _validate_window(start_at: datetime | None, end_at: datetime | None) -> TimeRange:
    if start_at is None or end_at is None:
        raise InvalidTimeRange("Start and end time are required")
    if timezone.is_naive(start_at) or timezone.is_naive(end_at):
        raise InvalidTimeRange("Start and end time must include a timezone")
    if end_at <= start_at:
        raise InvalidTimeRange("End time must be after start time")
    return TimeRange(start_at, end_at)


def _conflict_error(result: Conflict) -> BookingError:
    if result.kind == CONFLICT_SCHEDULE:
        return InvalidTimeRange(result.reason)
    return AvailabilityConflict(result.reason)


def _action_q(action: str | None) -> Q:
    if action is None:
        return Q(overstay_action__isnull=True)
    return Q(overstay_action=action)


def _overtime_rate() -> Decimal:
    return Decimal(str(settings.OVERSTAY_HOURLY_RATE))


def get_booking(booking_id) -> Booking:
    try:
        return Booking.objects.select_related("spot", "spot__owner", "renter").get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Reservation {booking_id} not found")


def capture_overtime(booking: Booking, amount: Decimal) -> bool:
    """Capture a finalized overtime charge. Logs and returns False on failure."""
    if amount <= 0:
        return True
    if not booking.payment_method_ref:
        logger.warning(f"Booking {booking.pk} has no payment method, overtime {amount} left uncollected")
        return False
    try:
        result = gateway.charge(
            amount,
            booking.currency,
            booking.payment_method_ref,
            description=f"Overtime for reservation #{booking.pk}",
            idempotency_key=f"overtime-{booking.pk}",
        )
    except gateway.PaymentGatewayError as e:
        logger.error(f"Overtime capture for booking {booking.pk} failed: {e}", exc_info=True)
        return False
    if not result.approved:
        logger.warning(f"Overtime capture for booking {booking.pk} declined: {result.decline_reason}")
        return False
    logger.info(f"Captured overtime {amount} for booking {booking.pk} ({result.reference})")
    return True


# ============================================================================
# AVAILABILITY ORACLE
# ============================================================================

def _occupied_by_bookings(spot: Spot, window: TimeRange, exclude_booking_id=None) -> list[OccupiedWindow]:
    bookings_qs = Booking.objects.filter(
        spot_id=spot.pk,
        status__in=Booking.BLOCKING_STATUSES,
        start_at__lt=window.end,
        end_at__gt=window.start,
    )
    if exclude_booking_id is not None:
        bookings_qs = bookings_qs.exclude(pk=exclude_booking_id)

    return [
        OccupiedWindow(TimeRange(start_at, end_at), "booking", str(pk))
        for pk, start_at, end_at in bookings_qs.values_list("pk", "start_at", "end_at")
    ]


def _occupied_by_holds(spot: Spot, requester, now: datetime) -> list[OccupiedWindow]:
    requester_id = getattr(requester, "pk", None)
    return [
        OccupiedWindow(hold.window, "hold", hold.hold_id)
        for hold in holds.live_holds_for_spot(spot.pk, now)
        if hold.user_id != requester_id
    ]


def _schedule_for(spot: Spot, window: TimeRange) -> tuple[list[WeeklyRule], list[DateOverride]]:
    rules = [
        WeeklyRule(rule.day_of_week, rule.start_time, rule.end_time, rule.is_available)
        for rule in spot.availability_rules.all()
    ]
    overrides = [
        DateOverride(override.override_date, override.is_available, override.start_time, override.end_time)
        for override in spot.calendar_overrides.filter(override_date__in=local_dates(window, spot.tzinfo))
    ]
    return rules, overrides


def check_spot_availability(
    spot: Spot,
    start_at: datetime,
    end_at: datetime,
    *,
    requester: "User | None" = None,
    exclude_booking_id=None,
    include_holds: bool = True,
    now: datetime | None = None,
) -> AvailabilityResult:
    """
    Decide whether ``[start_at, end_at)`` can be reserved on ``spot``.

    Blocking reservations always count, whoever owns them. Live holds count
    unless they belong to ``requester``. Read only.
    """
    now = now or timezone.now()
    window = _validate_window(start_at, end_at)

    if not spot.is_active:
        return Conflict("Spot is not accepting reservations")

    occupied = _occupied_by_bookings(spot, window, exclude_booking_id)
    if include_holds:
        occupied += _occupied_by_holds(spot, requester, now)

    rules, overrides = _schedule_for(spot, window)
    return evaluate_availability(window, occupied, rules, overrides, spot.tzinfo)


# ============================================================================
# HOLD MANAGER
# ============================================================================

def create_hold(
    spot: Spot,
    start_at: datetime,
    end_at: datetime,
    requester: "User",
    *,
    idempotency_key: str | None = None,
    now: datetime | None = None,
) -> holds.Hold:
    """Place an advisory hold on a free window and signal it to other viewers."""
    now = now or timezone.now()
    window = _validate_window(start_at, end_at)

    if idempotency_key:
        existing = holds.find_by_idempotency_key(requester.pk, idempotency_key, now)
        if existing is not None and existing.spot_id == spot.pk:
            logger.info(f"Returning existing hold {existing.hold_id} for idempotency key {idempotency_key}")
            return existing

    if spot.owner_id == requester.pk:
        raise PreconditionFailed("You cannot reserve your own spot")
    if window.end <= now:
        raise InvalidTimeRange("Requested window is in the past")

    result = check_spot_availability(spot, window.start, window.end, requester=requester, now=now)
    if not result.available:
        logger.info(f"Hold on spot {spot.pk} refused for user {requester.pk}: {result.reason}")
        raise _conflict_error(result)

    try:
        hold = holds.save_hold(
            spot.pk,
            requester.pk,
            window.start,
            window.end,
            now,
            idempotency_key=idempotency_key or "",
        )
    except holds.HoldIndexBusy as e:
        logger.warning(f"Hold on spot {spot.pk} for user {requester.pk} not placed: {e}")
        raise AvailabilityConflict("Another booking is being processed for this spot. Please try again.")

    message_bus.publish_events(
        [
            HoldCreated(
                aggregate_id=str(spot.pk),
                hold_id=hold.hold_id,
                spot_id=spot.pk,
                requester_id=requester.pk,
                start_at=hold.start_at,
                end_at=hold.end_at,
            )
        ]
    )
    return hold


# ============================================================================
# BOOKING CONFLICT RESOLVER
# ============================================================================

def commit_reservation(
    spot: Spot,
    start_at: datetime,
    end_at: datetime,
    requester: "User",
    *,
    hold_id: str | None = None,
    vehicle_ref: str = "",
    payment_method_ref: str = "",
    idempotency_key: str | None = None,
    now: datetime | None = None,
) -> Booking:
    """
    Atomically re-check availability and insert a ``held`` reservation.

    The spot row is locked for the duration of the transaction so concurrent
    commits for the same spot serialize here. Holds are not consulted: only
    committed reservations decide.
    """
    now = now or timezone.now()
    window = _validate_window(start_at, end_at)
    if window.end <= now:
        raise InvalidTimeRange("Requested window is in the past")

    with DjangoUnitOfWork() as uow:
        try:
            locked_spot = Spot.objects.select_for_update().get(pk=spot.pk)
        except Spot.DoesNotExist:
            raise NotFound(f"Spot {spot.pk} not found")

        result = check_spot_availability(
            locked_spot,
            window.start,
            window.end,
            requester=requester,
            include_holds=False,
            now=now,
        )
        if not result.available:
            logger.info(f"Commit on spot {spot.pk} refused for user {requester.pk}: {result.reason}")
            raise _conflict_error(result)

        quote = quote_reservation(
            locked_spot.hourly_rate,
            window,
            Decimal(str(settings.BOOKING_SERVICE_FEE_RATE)),
            settings.BOOKING_CURRENCY,
        )
        booking = Booking.objects.create(
            spot=locked_spot,
            renter=requester,
            vehicle_ref=vehicle_ref,
            start_at=window.start,
            end_at=window.end,
            status=Booking.Status.HELD,
            hourly_rate=quote.hourly_rate.amount,
            total_hours=quote.total_hours,
            subtotal=quote.subtotal.amount,
            service_fee=quote.service_fee.amount,
            total_amount=quote.total.amount,
            currency=quote.total.currency,
            payment_method_ref=payment_method_ref,
            idempotency_key=idempotency_key or "",
        )
        uow.add_event(
            BookingCommitted(
                aggregate_id=str(booking.pk),
                booking_id=booking.pk,
                spot_id=locked_spot.pk,
                requester_id=requester.pk,
                start_at=booking.start_at,
                end_at=booking.end_at,
            )
        )

    if hold_id:
        hold = holds.get_hold(hold_id)
        if hold is not None and hold.user_id == requester.pk:
            holds.release_hold(hold)
    holds.release_user_holds(spot.pk, requester.pk, window, now)

    logger.info(f"Booking {booking.pk} committed on spot {spot.pk} for {window}")
    return booking


def _cancel_unpaid(booking: Booking, reason: str) -> None:
    Booking.objects.filter(pk=booking.pk, status=Booking.Status.HELD).update(
        status=Booking.Status.CANCELED,
        cancellation_reason=reason[:255],
        updated_at=timezone.now(),
    )
    logger.info(f"Booking {booking.pk} canceled: {reason}")


def create_reservation(
    spot: Spot,
    start_at: datetime,
    end_at: datetime,
    requester: "User",
    *,
    hold_id: str | None = None,
    vehicle_ref: str = "",
    payment_method_ref: str = "",
    idempotency_key: str | None = None,
    now: datetime | None = None,
) -> Booking:
    """
    Commit a reservation and pay for it.

    The reservation is written as ``held`` first so the slot is secured
    before money moves; an approved charge promotes it to ``paid``, a
    declined one cancels it and frees the slot.
    """
    now = now or timezone.now()

    if idempotency_key:
        existing = (
            Booking.objects.filter(renter=requester, idempotency_key=idempotency_key)
            .exclude(status=Booking.Status.CANCELED)
            .first()
        )
        if existing is not None:
            logger.info(f"Returning booking {existing.pk} for idempotency key {idempotency_key}")
            return existing

    if spot.owner_id == requester.pk:
        raise PreconditionFailed("You cannot reserve your own spot")
    if not payment_method_ref:
        raise PaymentRequired("A stored payment method is required to reserve a spot")

    booking = commit_reservation(
        spot,
        start_at,
        end_at,
        requester,
        hold_id=hold_id,
        vehicle_ref=vehicle_ref,
        payment_method_ref=payment_method_ref,
        idempotency_key=idempotency_key,
        now=now,
    )

    charge_key = f"booking-{booking.pk}"
    try:
        payment = gateway.charge(
            booking.total_amount,
            booking.currency,
            payment_method_ref,
            description=f"Parking reservation #{booking.pk}",
            idempotency_key=charge_key,
        )
    except gateway.PaymentGatewayError as e:
        logger.error(
            f"Charge for booking {booking.pk} has unknown outcome, idempotency key {charge_key}: {e}",
            exc_info=True,
        )
        _cancel_unpaid(booking, f"Payment processor unavailable, charge key {charge_key}")
        raise PaymentFailure(str(e), retryable=True)

    if not payment.approved:
        _cancel_unpaid(booking, f"Payment declined: {payment.decline_reason}")
        raise PaymentFailure(f"Payment declined: {payment.decline_reason}", retryable=False)

    updated = Booking.objects.filter(pk=booking.pk, status=Booking.Status.HELD).update(
        status=Booking.Status.PAID,
        payment_reference=payment.reference,
        updated_at=timezone.now(),
    )
    if not updated:
        gateway.refund(payment.reference)
        raise AvailabilityConflict("Reservation expired before payment completed")

    booking.refresh_from_db()
    notifications.notify_booking_confirmed(booking)
    return booking


# ============================================================================
# RENTER ACTIONS
# ============================================================================

def confirm_departure(booking_id, requester: "User | None" = None, *, now: datetime | None = None) -> Booking:
    """
    Renter confirms they left the spot.

    Allowed from ``DEPARTURE_EARLIEST_MINUTES`` before the end time. A running
    overtime charge is finalized at the departure instant.
    """
    now = now or timezone.now()
    booking = get_booking(booking_id)

    if requester is not None and booking.renter_id != requester.pk:
        raise NotFound(f"Reservation {booking_id} not found")
    if booking.status not in Booking.SWEEP_STATUSES:
        raise PreconditionFailed("Reservation is not in progress")
    earliest = booking.end_at - timedelta(minutes=settings.DEPARTURE_EARLIEST_MINUTES)
    if now < earliest:
        raise PreconditionFailed(
            f"Departure can be confirmed from {settings.DEPARTURE_EARLIEST_MINUTES} minutes before the end time"
        )

    updates = {
        "status": Booking.Status.COMPLETED,
        "departed_at": now,
        "updated_at": timezone.now(),
    }
    final_charge = None
    if booking.overstay_action == ACTION_CHARGING:
        computed = compute_overtime_charge(booking.overstay_grace_end, now, _overtime_rate())
        final_charge = max(booking.overstay_charge_amount, computed)
        updates["overstay_charge_amount"] = final_charge

    updated = (
        Booking.objects.filter(pk=booking.pk, status=booking.status)
        .filter(_action_q(booking.overstay_action))
        .update(**updates)
    )
    if not updated:
        raise PreconditionFailed("Reservation changed while confirming departure, please retry")

    booking.refresh_from_db()
    logger.info(f"Booking {booking.pk} completed by departure at {now.isoformat()}")

    if final_charge:
        capture_overtime(booking, final_charge)
    notifications.notify_booking_completed(booking, overtime=final_charge)
    return booking


def extend_reservation(
    booking_id,
    additional_hours,
    requester: "User | None" = None,
    *,
    payment_method_ref: str | None = None,
    now: datetime | None = None,
) -> ExtensionResult:
    """
    Move a reservation's end time later and charge for the added time.

    The added slice is checked, charged, then re-checked under the spot
    lock; a conflict found at that point refunds the charge.
    """
    now = now or timezone.now()
    booking = get_booking(booking_id)

    if requester is not None and booking.renter_id != requester.pk:
        raise NotFound(f"Reservation {booking_id} not found")
    if booking.status not in Booking.SWEEP_STATUSES:
        raise PreconditionFailed("Only paid or active reservations can be extended")
    if not can_extend(booking.overstay):
        raise PreconditionFailed("Reservation cannot be extended after the owner acted on an overstay")

    try:
        hours = Decimal(str(additional_hours))
    except InvalidOperation:
        raise InvalidTimeRange("Additional hours must be a number")
    if hours <= 0:
        raise InvalidTimeRange("Additional hours must be positive")

    old_end = booking.end_at
    new_end = old_end + timedelta(seconds=int(hours * 3600))
    if new_end <= now:
        raise InvalidTimeRange("Extended reservation must end in the future")

    result = check_spot_availability(
        booking.spot, old_end, new_end, requester=booking.renter, exclude_booking_id=booking.pk, now=now
    )
    if not result.available:
        raise _conflict_error(result)

    method = payment_method_ref or booking.payment_method_ref
    if not method:
        raise PaymentRequired("A stored payment method is required to extend a reservation")

    quote = quote_reservation(
        booking.hourly_rate,
        TimeRange(old_end, new_end),
        Decimal(str(settings.BOOKING_SERVICE_FEE_RATE)),
        booking.currency,
    )
    charge_key = f"extend-{booking.pk}-{int(new_end.timestamp())}"
    try:
        payment = gateway.charge(
            quote.total.amount,
            booking.currency,
            method,
            description=f"Extension of reservation #{booking.pk}",
            idempotency_key=charge_key,
        )
    except gateway.PaymentGatewayError as e:
        logger.error(
            f"Extension charge for booking {booking.pk} has unknown outcome, idempotency key {charge_key}: {e}",
            exc_info=True,
        )
        raise PaymentFailure(str(e), retryable=True)
    if not payment.approved:
        raise PaymentFailure(f"Payment declined: {payment.decline_reason}", retryable=False)

    try:
        with DjangoUnitOfWork() as uow:
            Spot.objects.select_for_update().get(pk=booking.spot_id)
            result = check_spot_availability(
                booking.spot,
                old_end,
                new_end,
                requester=booking.renter,
                exclude_booking_id=booking.pk,
                include_holds=False,
                now=now,
            )
            if not result.available:
                raise _conflict_error(result)

            # A not-yet-acted overstay is cleared so detection restarts from the new end time
            updated = (
                Booking.objects.filter(pk=booking.pk, end_at=old_end, status__in=Booking.SWEEP_STATUSES)
                .filter(Q(overstay_action__isnull=True) | Q(overstay_action=ACTION_PENDING))
                .update(
                    end_at=new_end,
                    total_hours=F("total_hours") + quote.total_hours,
                    subtotal=F("subtotal") + quote.subtotal.amount,
                    service_fee=F("service_fee") + quote.service_fee.amount,
                    total_amount=F("total_amount") + quote.total.amount,
                    ending_soon_notified_at=None,
                    overstay_detected_at=None,
                    overstay_grace_end=None,
                    overstay_action=None,
                    updated_at=timezone.now(),
                )
            )
            if not updated:
                raise PreconditionFailed("Reservation changed while extending, please retry")

            uow.add_event(
                BookingExtended(
                    aggregate_id=str(booking.pk),
                    booking_id=booking.pk,
                    spot_id=booking.spot_id,
                    requester_id=booking.renter_id,
                    start_at=old_end,
                    end_at=new_end,
                    amount_charged=quote.total.amount,
                )
            )
    except BookingError:
        logger.warning(f"Extension of booking {booking.pk} failed after charge, refunding {payment.reference}")
        gateway.refund(payment.reference, quote.total.amount)
        raise

    booking.refresh_from_db()
    logger.info(f"Booking {booking.pk} extended to {new_end.isoformat()} for {quote.total}")
    notifications.notify_booking_extended(booking, quote.total.amount)
    return ExtensionResult(booking=booking, end_at=new_end, amount_charged=quote.total.amount)


# ============================================================================
# OWNER ACTIONS
# ============================================================================

def _get_owned_booking(booking_id, requester: "User | None") -> Booking:
    booking = get_booking(booking_id)
    if requester is not None and booking.spot.owner_id != requester.pk:
        raise NotFound(f"Reservation {booking_id} not found")
    return booking


def set_overstay_action(booking_id, action: str, requester: "User | None" = None, *, now: datetime | None = None) -> Booking:
    """
    Owner picks ``charging`` or ``towing`` once the grace period is over.

    Switching to charging records the charge owed at that instant.
    """
    now = now or timezone.now()
    booking = _get_owned_booking(booking_id, requester)

    if booking.status not in Booking.SWEEP_STATUSES:
        raise PreconditionFailed("Reservation is no longer in progress")
    error = action_error(booking.overstay, action, now)
    if error:
        raise PreconditionFailed(error)

    updates = {"overstay_action": action, "updated_at": timezone.now()}
    if action == ACTION_CHARGING:
        computed = compute_overtime_charge(booking.overstay_grace_end, now, _overtime_rate())
        updates["overstay_charge_amount"] = max(booking.overstay_charge_amount, computed)

    updated = (
        Booking.objects.filter(
            pk=booking.pk,
            status__in=Booking.SWEEP_STATUSES,
            overstay_detected_at=booking.overstay_detected_at,
        )
        .filter(_action_q(booking.overstay_action))
        .update(**updates)
    )
    if not updated:
        raise PreconditionFailed("Reservation changed, please retry")

    booking.refresh_from_db()
    logger.info(f"Overstay action for booking {booking.pk} set to {action}")
    notifications.notify_overstay_action(booking, action)
    return booking


def cancel_tow_request(booking_id, requester: "User | None" = None, *, now: datetime | None = None) -> Booking:
    """Owner withdraws a tow request; the overstay goes back to waiting for an action."""
    booking = _get_owned_booking(booking_id, requester)

    if booking.status not in Booking.SWEEP_STATUSES or booking.overstay_action != ACTION_TOWING:
        raise PreconditionFailed("There is no active tow request for this reservation")

    updated = Booking.objects.filter(
        pk=booking.pk,
        status__in=Booking.SWEEP_STATUSES,
        overstay_action=ACTION_TOWING,
    ).update(overstay_action=ACTION_PENDING, updated_at=timezone.now())
    if not updated:
        raise PreconditionFailed("Reservation changed, please retry")

    booking.refresh_from_db()
    logger.info(f"Tow request for booking {booking.pk} withdrawn")
    notifications.notify_tow_canceled(booking)
    return booking
