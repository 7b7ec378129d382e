"""Notification model.

In-app record of every user-visible reservation transition. Rows are
created by the notification services alongside push and email delivery
and are consumed by recipients, who can mark them as read.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        BOOKING_CONFIRMED = "booking_confirmed", _("Booking confirmed")
        BOOKING_CANCELED = "booking_canceled", _("Booking canceled")
        BOOKING_EXTENDED = "booking_extended", _("Booking extended")
        ENDING_SOON = "ending_soon", _("Reservation ending soon")
        OVERSTAY_DETECTED = "overstay_detected", _("Overstay detected")
        GRACE_EXPIRED = "grace_expired", _("Grace period expired")
        OVERTIME_CHARGING = "overtime_charging", _("Overtime charging")
        TOW_REQUESTED = "tow_requested", _("Tow requested")
        TOW_CANCELED = "tow_canceled", _("Tow request withdrawn")
        BOOKING_COMPLETED = "booking_completed", _("Booking completed")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications'
    )
    type = models.CharField(max_length=32, choices=Type.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    booking = models.ForeignKey(
        'bookings.Booking',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications',
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"
