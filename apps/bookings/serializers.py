"""Serializers for the booking domain."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from apps.spots.models import Spot

from .domain.overstay import OWNER_ACTIONS
from .models import Booking


class WindowSerializer(serializers.Serializer):
    """Spot and requested ``[start_at, end_at)`` window."""

    spot = serializers.PrimaryKeyRelatedField(queryset=Spot.objects.all())
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    idempotency_key = serializers.CharField(max_length=128, required=False, allow_blank=True)

    def validate(self, attrs):  # type: ignore
        if attrs["end_at"] <= attrs["start_at"]:
            raise serializers.ValidationError({"end_at": "End time must be after start time."})
        return attrs


class HoldCreateSerializer(WindowSerializer):
    pass


class HoldSerializer(serializers.Serializer):
    hold_id = serializers.CharField()
    spot_id = serializers.IntegerField()
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()


class ReservationCreateSerializer(WindowSerializer):
    """Renter commits a reservation, paying with a stored payment method."""

    hold_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    vehicle_ref = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    payment_method_ref = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Detailed reservation representation."""

    spot_id = serializers.ReadOnlyField(source="spot.id")
    spot_title = serializers.ReadOnlyField(source="spot.title")
    renter_id = serializers.ReadOnlyField(source="renter.id")

    class Meta:
        model = Booking
        fields = [
            "id",
            "spot_id",
            "spot_title",
            "renter_id",
            "vehicle_ref",
            "start_at",
            "end_at",
            "status",
            "hourly_rate",
            "total_hours",
            "subtotal",
            "service_fee",
            "total_amount",
            "currency",
            "payment_reference",
            "overstay_detected_at",
            "overstay_grace_end",
            "overstay_action",
            "overstay_charge_amount",
            "departed_at",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ExtendSerializer(serializers.Serializer):
    additional_hours = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal("0.25"))
    payment_method_ref = serializers.CharField(max_length=128, required=False, allow_blank=True)


class OverstayActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=OWNER_ACTIONS)
