"""Notification services for in-app records, push messages and emails.

Every helper is fire-and-forget: failures are logged and reported as
``False`` so callers (the booking path, the overstay sweep) never abort
because a delivery channel is down.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

import requests
from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from .models import Notification

if TYPE_CHECKING:  # pragma: no cover
    from django.contrib.auth.models import User  # type: ignore
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)

PUSH_TIMEOUT_SECONDS = 10


# ============================================================================
# CHANNELS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    message: str,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send a plain text email, optionally with an HTML alternative.

    Returns:
        bool: True if the message was handed to the mail backend
    """
    try:
        if html_message and not message:
            message = strip_tags(html_message)

        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def send_push_notification(
    user: "User",
    title: str,
    message: str,
    *,
    data: dict | None = None,
    urgent: bool = False,
) -> bool:
    """
    Deliver a push message through the configured push gateway.

    Without ``PUSH_GATEWAY_URL`` the message is only logged.
    """
    gateway_url = getattr(settings, "PUSH_GATEWAY_URL", "")
    if not gateway_url:
        logger.info(f"[PUSH] Would send to user {user.pk}: {title}")
        return True

    payload = {
        "user_id": user.pk,
        "title": title,
        "body": message,
        "priority": "high" if urgent else "normal",
        "data": data or {},
    }
    headers = {}
    token = getattr(settings, "PUSH_GATEWAY_TOKEN", "")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        response = requests.post(gateway_url, json=payload, headers=headers, timeout=PUSH_TIMEOUT_SECONDS)
        response.raise_for_status()
        logger.info(f"Push sent to user {user.pk}: {title}")
        return True
    except requests.RequestException as e:
        logger.error(f"Failed to send push to user {user.pk}: {e}", exc_info=True)
        return False


def create_in_app_notification(
    user: "User",
    notification_type: str,
    title: str,
    message: str,
    *,
    booking: "Booking | None" = None,
) -> bool:
    """
    Create an in-app notification row.

    Returns:
        bool: True if the notification was stored
    """
    try:
        Notification.objects.create(
            user=user,
            type=notification_type,
            title=title,
            message=message,
            booking=booking,
        )

        logger.info(f"In-app notification created for user {user.pk}: {title}")
        return True

    except Exception as e:
        logger.error(f"Failed to create in-app notification for user {user.pk}: {e}", exc_info=True)
        return False


def notify_user_all_channels(
    user: "User",
    notification_type: str,
    title: str,
    message: str,
    *,
    booking: "Booking | None" = None,
    email: bool = False,
    urgent: bool = False,
) -> dict[str, bool]:
    """
    Notify a user in-app, by push and, when requested, by email.

    Returns:
        dict: delivery result per channel
    """
    results = {
        "in_app": create_in_app_notification(user, notification_type, title, message, booking=booking),
        "push": send_push_notification(
            user,
            title,
            message,
            data={"type": notification_type, "booking_id": booking.pk if booking else None},
            urgent=urgent,
        ),
        "email": False,
    }

    if email and user.email:
        results["email"] = send_email_notification(user.email, title, message)

    return results


# ============================================================================
# RESERVATION NOTIFICATIONS
# ============================================================================

def _money(amount: Decimal, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def notify_booking_confirmed(booking: "Booking") -> None:
    spot = booking.spot
    notify_user_all_channels(
        booking.renter,
        Notification.Type.BOOKING_CONFIRMED,
        "Reservation confirmed",
        f"Your reservation at {spot.title} from {booking.start_at:%Y-%m-%d %H:%M} "
        f"to {booking.end_at:%H:%M} is confirmed. Total: {_money(booking.total_amount, booking.currency)}.",
        booking=booking,
        email=True,
    )
    notify_user_all_channels(
        spot.owner,
        Notification.Type.BOOKING_CONFIRMED,
        "New reservation",
        f"{spot.title} was reserved from {booking.start_at:%Y-%m-%d %H:%M} to {booking.end_at:%H:%M}.",
        booking=booking,
    )


def notify_booking_canceled(booking: "Booking", reason: str) -> None:
    notify_user_all_channels(
        booking.renter,
        Notification.Type.BOOKING_CANCELED,
        "Reservation canceled",
        f"Your reservation at {booking.spot.title} was canceled: {reason}",
        booking=booking,
    )


def notify_booking_extended(booking: "Booking", amount_charged: Decimal) -> None:
    notify_user_all_channels(
        booking.renter,
        Notification.Type.BOOKING_EXTENDED,
        "Reservation extended",
        f"Your reservation now ends at {booking.end_at:%H:%M}. "
        f"Charged {_money(amount_charged, booking.currency)}.",
        booking=booking,
    )
    notify_user_all_channels(
        booking.spot.owner,
        Notification.Type.BOOKING_EXTENDED,
        "Reservation extended",
        f"The reservation at {booking.spot.title} now ends at {booking.end_at:%H:%M}.",
        booking=booking,
    )


def notify_ending_soon(booking: "Booking") -> None:
    notify_user_all_channels(
        booking.renter,
        Notification.Type.ENDING_SOON,
        "Your parking ends soon",
        f"Your reservation at {booking.spot.title} ends at {booking.end_at:%H:%M}. "
        "Extend it or move your vehicle to avoid overtime charges.",
        booking=booking,
    )


def notify_overstay_detected(booking: "Booking") -> None:
    spot = booking.spot
    notify_user_all_channels(
        booking.renter,
        Notification.Type.OVERSTAY_DETECTED,
        "Reservation time is over",
        f"Your reservation at {spot.title} ended at {booking.end_at:%H:%M}. "
        f"Please move your vehicle before {booking.overstay_grace_end:%H:%M} "
        "or the owner may charge overtime or request a tow.",
        booking=booking,
        urgent=True,
    )
    notify_user_all_channels(
        spot.owner,
        Notification.Type.OVERSTAY_DETECTED,
        "Vehicle overstaying",
        f"The vehicle at {spot.title} has not left after the reservation ended at "
        f"{booking.end_at:%H:%M}. The grace period ends at {booking.overstay_grace_end:%H:%M}.",
        booking=booking,
        email=True,
    )


def notify_grace_expired(booking: "Booking") -> None:
    spot = booking.spot
    notify_user_all_channels(
        booking.renter,
        Notification.Type.GRACE_EXPIRED,
        "Grace period expired",
        f"The grace period for {spot.title} has ended. The owner can now charge overtime or request a tow.",
        booking=booking,
        urgent=True,
    )
    notify_user_all_channels(
        spot.owner,
        Notification.Type.GRACE_EXPIRED,
        "Choose an overstay action",
        f"The vehicle at {spot.title} is still there. You can start overtime charging or request a tow.",
        booking=booking,
    )


def notify_overstay_action(booking: "Booking", action: str) -> None:
    spot = booking.spot
    if action == "charging":
        renter_type = Notification.Type.OVERTIME_CHARGING
        renter_text = (
            f"Overtime charging started at {spot.title}: "
            f"{_money(Decimal(settings.OVERSTAY_HOURLY_RATE), booking.currency)} per started hour."
        )
    else:
        renter_type = Notification.Type.TOW_REQUESTED
        renter_text = f"The owner of {spot.title} has requested a tow for your vehicle."

    notify_user_all_channels(
        booking.renter, renter_type, "Overstay action taken", renter_text, booking=booking, urgent=True
    )
    notify_user_all_channels(
        spot.owner,
        renter_type,
        "Overstay action recorded",
        f"Your choice ({action}) for {spot.title} was recorded.",
        booking=booking,
    )


def notify_tow_canceled(booking: "Booking") -> None:
    spot = booking.spot
    for user in (booking.renter, spot.owner):
        notify_user_all_channels(
            user,
            Notification.Type.TOW_CANCELED,
            "Tow request withdrawn",
            f"The tow request for {spot.title} was withdrawn.",
            booking=booking,
        )


def notify_overtime_increment(booking: "Booking", amount: Decimal) -> None:
    notify_user_all_channels(
        booking.renter,
        Notification.Type.OVERTIME_CHARGING,
        "Overtime charge updated",
        f"Overtime at {booking.spot.title} is now {_money(amount, booking.currency)}.",
        booking=booking,
    )


def notify_booking_completed(booking: "Booking", overtime: Decimal | None = None) -> None:
    spot = booking.spot
    if overtime:
        renter_text = (
            f"Your reservation at {spot.title} is completed. "
            f"Final overtime charge: {_money(overtime, booking.currency)}."
        )
        owner_text = (
            f"The reservation at {spot.title} is completed with "
            f"{_money(overtime, booking.currency)} overtime."
        )
    else:
        renter_text = f"Your reservation at {spot.title} is completed. Thank you!"
        owner_text = f"The reservation at {spot.title} is completed."

    notify_user_all_channels(
        booking.renter, Notification.Type.BOOKING_COMPLETED, "Reservation completed", renter_text, booking=booking
    )
    notify_user_all_channels(
        spot.owner, Notification.Type.BOOKING_COMPLETED, "Reservation completed", owner_text, booking=booking
    )
