from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.core import mail
from django.test import override_settings

from apps.notifications import services
from apps.notifications.models import Notification

SERVICES_MODULE_PATH = "apps.notifications.services"


@pytest.fixture
def booking(make_booking):
    booking = make_booking(
        datetime(2030, 1, 7, 10, tzinfo=dt_timezone.utc),
        datetime(2030, 1, 7, 11, tzinfo=dt_timezone.utc),
    )
    booking.overstay_detected_at = datetime(2030, 1, 7, 11, 5, tzinfo=dt_timezone.utc)
    booking.overstay_grace_end = datetime(2030, 1, 7, 11, 15, tzinfo=dt_timezone.utc)
    return booking


@pytest.mark.django_db
def test_all_channels_without_push_gateway(renter):
    results = services.notify_user_all_channels(
        renter, Notification.Type.ENDING_SOON, "Ends soon", "Move your car", email=True
    )

    assert results == {"in_app": True, "push": True, "email": True}
    assert Notification.objects.filter(user=renter, type=Notification.Type.ENDING_SOON).count() == 1
    assert mail.outbox[0].to == ["renter@example.com"]


@pytest.mark.django_db
@override_settings(PUSH_GATEWAY_URL="https://push.test/send", PUSH_GATEWAY_TOKEN="tok")
def test_push_posts_to_gateway(renter):
    response = MagicMock()
    with patch(f"{SERVICES_MODULE_PATH}.requests.post", return_value=response) as post:
        assert services.send_push_notification(renter, "Title", "Body", urgent=True) is True

    args, kwargs = post.call_args
    assert args[0] == "https://push.test/send"
    assert kwargs["json"]["priority"] == "high"
    assert kwargs["json"]["user_id"] == renter.pk
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}


@pytest.mark.django_db
@override_settings(PUSH_GATEWAY_URL="https://push.test/send")
def test_push_failure_is_reported_not_raised(renter):
    with patch(f"{SERVICES_MODULE_PATH}.requests.post", side_effect=requests.ConnectionError("down")):
        assert services.send_push_notification(renter, "Title", "Body") is False


@pytest.mark.django_db
def test_overstay_detected_notifies_both_parties(booking, renter, owner):
    services.notify_overstay_detected(booking)

    renter_note = Notification.objects.get(user=renter)
    owner_note = Notification.objects.get(user=owner)
    assert renter_note.type == Notification.Type.OVERSTAY_DETECTED
    assert "11:15" in renter_note.message
    assert owner_note.booking == booking
    assert [message.to for message in mail.outbox] == [["owner@example.com"]]


@pytest.mark.django_db
def test_completed_with_overtime_mentions_amount(booking, renter):
    services.notify_booking_completed(booking, overtime=Decimal("50.00"))

    assert "50.00 USD" in Notification.objects.get(user=renter).message


@pytest.mark.django_db
def test_overstay_action_towing(booking, renter):
    services.notify_overstay_action(booking, "towing")

    assert Notification.objects.get(user=renter).type == Notification.Type.TOW_REQUESTED
