from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.test import override_settings

from apps.payments import gateway

GATEWAY_MODULE_PATH = "apps.payments.gateway"


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


def test_emulated_charge_is_approved():
    with override_settings(PAYMENT_API_KEY=""):
        result = gateway.charge(Decimal("11.00"), "USD", "pm_card_visa")

    assert result.approved
    assert result.reference.startswith("pay_")


@override_settings(PAYMENT_API_KEY="sk_test", PAYMENT_API_BASE_URL="https://pay.test/v1/")
def test_charge_posts_minor_units_with_idempotency_key():
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=_response({"id": "ch_1", "status": "succeeded"})) as post:
        result = gateway.charge(Decimal("16.50"), "USD", "pm_card_visa", idempotency_key="extend-1")

    assert result == gateway.PaymentResult(approved=True, reference="ch_1")
    args, kwargs = post.call_args
    assert args[0] == "https://pay.test/v1/charges"
    assert kwargs["json"]["amount"] == 1650
    assert kwargs["headers"]["Authorization"] == "Bearer sk_test"
    assert kwargs["headers"]["Idempotency-Key"] == "extend-1"


@override_settings(PAYMENT_API_KEY="sk_test")
def test_declined_charge():
    payload = {"id": "ch_2", "status": "failed", "error": {"message": "card_declined"}}
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=_response(payload)):
        result = gateway.charge(Decimal("5.00"), "USD", "pm_bad")

    assert not result.approved
    assert result.decline_reason == "card_declined"


@override_settings(PAYMENT_API_KEY="sk_test")
def test_unreachable_processor_raises():
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", side_effect=requests.ConnectionError("down")):
        with pytest.raises(gateway.PaymentGatewayError):
            gateway.charge(Decimal("5.00"), "USD", "pm_card_visa")


@override_settings(PAYMENT_API_KEY="sk_test")
def test_http_error_raises():
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=_response({}, status_code=502)):
        with pytest.raises(gateway.PaymentGatewayError):
            gateway.charge(Decimal("5.00"), "USD", "pm_card_visa")


@override_settings(PAYMENT_API_KEY="sk_test")
def test_card_error_status_is_a_decline():
    payload = {"error": {"type": "card_error", "message": "insufficient_funds"}}
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=_response(payload, status_code=402)):
        result = gateway.charge(Decimal("5.00"), "USD", "pm_card_visa")

    assert result == gateway.PaymentResult(approved=False, decline_reason="insufficient_funds")


@override_settings(PAYMENT_API_KEY="sk_test")
def test_card_error_without_json_body_is_a_decline():
    response = _response(None, status_code=402)
    response.json.side_effect = ValueError("no json")
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=response):
        result = gateway.charge(Decimal("5.00"), "USD", "pm_card_visa")

    assert not result.approved
    assert result.decline_reason == "declined"


@override_settings(PAYMENT_API_KEY="sk_test")
def test_rejected_credentials_raise():
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=_response({}, status_code=401)):
        with pytest.raises(gateway.PaymentGatewayError):
            gateway.charge(Decimal("5.00"), "USD", "pm_card_visa")


@override_settings(PAYMENT_API_KEY="sk_test")
def test_refund_partial_amount():
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", return_value=_response({"status": "succeeded"})) as post:
        assert gateway.refund("ch_1", Decimal("11.00")) is True

    assert post.call_args.kwargs["json"] == {"charge": "ch_1", "amount": 1100}


@override_settings(PAYMENT_API_KEY="sk_test")
def test_refund_failure_returns_false():
    with patch(f"{GATEWAY_MODULE_PATH}.requests.post", side_effect=requests.Timeout("slow")):
        assert gateway.refund("ch_1") is False
