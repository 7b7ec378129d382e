"""Admin registration for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "spot",
        "renter",
        "status",
        "start_at",
        "end_at",
        "total_amount",
        "overstay_action",
        "overstay_charge_amount",
    )
    list_filter = ("status", "overstay_action", "currency")
    search_fields = ("spot__title", "renter__email", "payment_reference", "vehicle_ref")
    date_hierarchy = "start_at"
    readonly_fields = (
        "hourly_rate",
        "total_hours",
        "subtotal",
        "service_fee",
        "total_amount",
        "payment_reference",
        "idempotency_key",
        "ending_soon_notified_at",
        "overstay_detected_at",
        "overstay_grace_end",
        "overstay_charge_amount",
        "departed_at",
        "created_at",
        "updated_at",
    )
