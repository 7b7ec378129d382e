"""Reservation models for ParkShare."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import TimeRange

from .domain.overstay import OverstaySnapshot


class Booking(models.Model):
    """Time-bounded reservation of a parking spot."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        HELD = "held", _("Held, awaiting payment")
        PAID = "paid", _("Paid")
        ACTIVE = "active", _("Active")
        COMPLETED = "completed", _("Completed")
        CANCELED = "canceled", _("Canceled")
        REFUNDED = "refunded", _("Refunded")

    class OverstayAction(models.TextChoices):
        PENDING_ACTION = "pending_action", _("Waiting for owner")
        CHARGING = "charging", _("Charging overtime")
        TOWING = "towing", _("Tow requested")

    # Statuses that occupy the spot's calendar
    BLOCKING_STATUSES = (Status.HELD, Status.PAID, Status.ACTIVE)
    # Statuses the overstay sweep acts on
    SWEEP_STATUSES = (Status.ACTIVE, Status.PAID)
    TERMINAL_STATUSES = (Status.COMPLETED, Status.CANCELED, Status.REFUNDED)

    spot = models.ForeignKey(
        "spots.Spot",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    vehicle_ref = models.CharField(max_length=64, blank=True)
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )

    hourly_rate = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Spot rate captured at reservation time."),
    )
    total_hours = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    service_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    payment_method_ref = models.CharField(max_length=128, blank=True)
    payment_reference = models.CharField(max_length=128, blank=True)
    idempotency_key = models.CharField(max_length=128, blank=True, db_index=True)

    ending_soon_notified_at = models.DateTimeField(null=True, blank=True)
    overstay_detected_at = models.DateTimeField(null=True, blank=True)
    overstay_grace_end = models.DateTimeField(null=True, blank=True)
    overstay_action = models.CharField(
        max_length=16,
        choices=OverstayAction.choices,
        null=True,
        blank=True,
    )
    overstay_charge_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    departed_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_at__gt=models.F("start_at")),
                name="booking_valid_window",
            ),
            models.CheckConstraint(
                condition=models.Q(overstay_charge_amount__gte=0),
                name="booking_overstay_charge_non_negative",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(overstay_detected_at__isnull=True, overstay_grace_end__isnull=True)
                    | models.Q(overstay_detected_at__isnull=False, overstay_grace_end__isnull=False)
                ),
                name="booking_overstay_grace_paired",
            ),
        ]
        indexes = [
            models.Index(fields=["spot", "start_at", "end_at"], name="booking_spot_window_idx"),
            models.Index(fields=["status", "end_at"], name="booking_status_end_idx"),
            models.Index(fields=["overstay_action"], name="booking_overstay_action_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} for spot {self.spot_id}"

    @property
    def window(self) -> TimeRange:
        return TimeRange(self.start_at, self.end_at)

    @property
    def overstay(self) -> OverstaySnapshot:
        return OverstaySnapshot(
            detected_at=self.overstay_detected_at,
            grace_end=self.overstay_grace_end,
            action=self.overstay_action,
        )

    @property
    def owner_id(self) -> int:
        return self.spot.owner_id

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES
