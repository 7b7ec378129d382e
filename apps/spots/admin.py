"""Admin registrations for parking spots."""

from __future__ import annotations

from django.contrib import admin

from .models import AvailabilityRule, CalendarOverride, Spot


class AvailabilityRuleInline(admin.TabularInline):
    model = AvailabilityRule
    extra = 0
    fields = ("day_of_week", "start_time", "end_time", "is_available")


class CalendarOverrideInline(admin.TabularInline):
    model = CalendarOverride
    extra = 0
    fields = ("override_date", "is_available", "start_time", "end_time", "reason")


@admin.register(Spot)
class SpotAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "hourly_rate", "timezone", "is_active", "created_at")
    list_filter = ("is_active", "timezone")
    search_fields = ("title", "address", "owner__email")
    inlines = (AvailabilityRuleInline, CalendarOverrideInline)
    readonly_fields = ("created_at", "updated_at")
