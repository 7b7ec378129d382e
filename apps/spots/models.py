"""Parking spot models for ParkShare.

A spot is the time-shared resource. Its owner declares a recurring weekly
schedule (``AvailabilityRule``) and date-specific exceptions (``CalendarOverride``);
time outside the declared schedule cannot be reserved.
"""

from __future__ import annotations

from decimal import Decimal
from zoneinfo import ZoneInfo

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Spot(models.Model):
    """Parking spot listed by a host for hourly reservations."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="spots",
    )
    title = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    hourly_rate = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    timezone = models.CharField(
        max_length=64,
        default=settings.TIME_ZONE,
        help_text=_("IANA time zone the availability schedule is expressed in."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Parking spot")
        verbose_name_plural = _("Parking spots")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "is_active"], name="spot_owner_active_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone or settings.TIME_ZONE)


class AvailabilityRule(models.Model):
    """Weekly recurring window during which the spot may be reserved."""

    class Weekday(models.IntegerChoices):
        MONDAY = 0, _("Monday")
        TUESDAY = 1, _("Tuesday")
        WEDNESDAY = 2, _("Wednesday")
        THURSDAY = 3, _("Thursday")
        FRIDAY = 4, _("Friday")
        SATURDAY = 5, _("Saturday")
        SUNDAY = 6, _("Sunday")

    spot = models.ForeignKey(
        Spot,
        on_delete=models.CASCADE,
        related_name="availability_rules",
    )
    day_of_week = models.PositiveSmallIntegerField(choices=Weekday.choices)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_available = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Availability rule")
        verbose_name_plural = _("Availability rules")
        ordering = ["day_of_week", "start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="availability_rule_valid_time_range",
            ),
        ]
        indexes = [
            models.Index(fields=["spot", "day_of_week"], name="availability_rule_day_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.spot.title}: {self.get_day_of_week_display()} {self.start_time}-{self.end_time}"


class CalendarOverride(models.Model):
    """Date-specific exception to the weekly schedule."""

    spot = models.ForeignKey(
        Spot,
        on_delete=models.CASCADE,
        related_name="calendar_overrides",
    )
    override_date = models.DateField()
    is_available = models.BooleanField(default=False)
    start_time = models.TimeField(
        null=True,
        blank=True,
        help_text=_("With end time, limits an open date to these hours. Leave empty for the whole day."),
    )
    end_time = models.TimeField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Calendar override")
        verbose_name_plural = _("Calendar overrides")
        ordering = ["override_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["spot", "override_date"],
                name="calendar_override_unique_date",
            ),
            models.CheckConstraint(
                condition=models.Q(start_time__isnull=True)
                | models.Q(end_time__isnull=True)
                | models.Q(end_time__gt=models.F("start_time")),
                name="calendar_override_valid_time_range",
            ),
        ]

    def __str__(self) -> str:
        state = "open" if self.is_available else "closed"
        return f"{self.spot.title}: {self.override_date} ({state})"
