from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("spots", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("vehicle_ref", models.CharField(blank=True, max_length=64)),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("held", "Held, awaiting payment"),
                            ("paid", "Paid"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("canceled", "Canceled"),
                            ("refunded", "Refunded"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                (
                    "hourly_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Spot rate captured at reservation time.",
                        max_digits=8,
                    ),
                ),
                ("total_hours", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=8)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("service_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("payment_method_ref", models.CharField(blank=True, max_length=128)),
                ("payment_reference", models.CharField(blank=True, max_length=128)),
                ("idempotency_key", models.CharField(blank=True, db_index=True, max_length=128)),
                ("ending_soon_notified_at", models.DateTimeField(blank=True, null=True)),
                ("overstay_detected_at", models.DateTimeField(blank=True, null=True)),
                ("overstay_grace_end", models.DateTimeField(blank=True, null=True)),
                (
                    "overstay_action",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("pending_action", "Waiting for owner"),
                            ("charging", "Charging overtime"),
                            ("towing", "Tow requested"),
                        ],
                        max_length=16,
                        null=True,
                    ),
                ),
                (
                    "overstay_charge_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10),
                ),
                ("departed_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "spot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="spots.spot",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["spot", "start_at", "end_at"], name="booking_spot_window_idx"),
                    models.Index(fields=["status", "end_at"], name="booking_status_end_idx"),
                    models.Index(fields=["overstay_action"], name="booking_overstay_action_idx"),
                ],
                "constraints": [
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
                ],
            },
        ),
    ]
