"""API views for the booking domain."""

from __future__ import annotations

import hmac
import logging

from django.conf import settings  # type: ignore
from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from . import services
from .exceptions import BookingError
from .models import Booking
from .serializers import (
    BookingSerializer,
    ExtendSerializer,
    HoldCreateSerializer,
    HoldSerializer,
    OverstayActionSerializer,
    ReservationCreateSerializer,
)
from .sweep import run_overstay_sweep

logger = logging.getLogger(__name__)

INTERNAL_SECRET_HEADER = "HTTP_X_INTERNAL_SECRET"


class HasInternalTaskSecret(permissions.BasePermission):
    """Scheduler calls authenticate with the shared INTERNAL_TASK_SECRET header."""

    def has_permission(self, request, view):  # type: ignore
        expected = getattr(settings, "INTERNAL_TASK_SECRET", "")
        provided = request.META.get(INTERNAL_SECRET_HEADER, "")
        if not expected or not provided:
            return False
        return hmac.compare_digest(expected, provided)


class BookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Reservations visible to their renter and to the spot owner."""

    queryset = Booking.objects.select_related("spot", "spot__owner", "renter").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "spot"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if getattr(user, "is_staff", False):
            return qs
        return qs.filter(Q(renter=user) | Q(spot__owner=user))

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, BookingError):
            return Response(exc.to_dict(), status=exc.http_status)
        return super().handle_exception(exc)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = services.create_reservation(
            data["spot"],
            data["start_at"],
            data["end_at"],
            request.user,
            hold_id=data.get("hold_id") or None,
            vehicle_ref=data.get("vehicle_ref", ""),
            payment_method_ref=data.get("payment_method_ref", ""),
            idempotency_key=data.get("idempotency_key") or None,
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def holds(self, request):  # type: ignore
        serializer = HoldCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        hold = services.create_hold(
            data["spot"],
            data["start_at"],
            data["end_at"],
            request.user,
            idempotency_key=data.get("idempotency_key") or None,
        )
        return Response(HoldSerializer(hold).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="confirm-departure")
    def confirm_departure(self, request, pk=None):  # type: ignore
        booking = services.confirm_departure(pk, request.user)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def extend(self, request, pk=None):  # type: ignore
        serializer = ExtendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = services.extend_reservation(
            pk,
            data["additional_hours"],
            request.user,
            payment_method_ref=data.get("payment_method_ref") or None,
        )
        return Response(
            {
                "id": result.booking.pk,
                "end_at": result.end_at,
                "amount_charged": str(result.amount_charged),
                "currency": result.booking.currency,
            }
        )

    @action(detail=True, methods=["post"], url_path="overstay-action")
    def overstay_action(self, request, pk=None):  # type: ignore
        serializer = OverstayActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = services.set_overstay_action(pk, serializer.validated_data["action"], request.user)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"], url_path="cancel-tow")
    def cancel_tow(self, request, pk=None):  # type: ignore
        booking = services.cancel_tow_request(pk, request.user)
        return Response(BookingSerializer(booking).data)

    @action(
        detail=False,
        methods=["post"],
        url_path="overstay-sweep",
        authentication_classes=[],
        permission_classes=[HasInternalTaskSecret],
    )
    def overstay_sweep(self, request):  # type: ignore
        try:
            summary = run_overstay_sweep()
        except Exception as e:
            logger.error(f"Overstay sweep failed: {e}", exc_info=True)
            return Response({"detail": "Overstay sweep failed."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({"processed": summary})
