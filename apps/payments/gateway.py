"""
Payment processor client.

Charges are keyed to a stored payment method reference; card data never
touches this service. Without ``PAYMENT_API_KEY`` the processor is
emulated and every charge is approved.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

import requests
from django.conf import settings  # type: ignore

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30

# Client errors the processor uses to refuse a charge; the body says why
DECLINE_STATUS_CODES = (400, 402, 422)


class PaymentGatewayError(Exception):
    """Raised when the processor cannot be reached or answers with an error."""


@dataclass(frozen=True)
class PaymentResult:
    approved: bool
    reference: str = ""
    decline_reason: str = ""


def _is_emulated() -> bool:
    return not getattr(settings, "PAYMENT_API_KEY", "")


def _post(path: str, payload: dict) -> dict:
    base_url = getattr(settings, "PAYMENT_API_BASE_URL", "").rstrip("/")
    headers = {
        "Authorization": f"Bearer {settings.PAYMENT_API_KEY}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    idempotency_key = payload.get("idempotency_key")
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key

    try:
        response = requests.post(f"{base_url}/{path}", json=payload, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
        if response.status_code in DECLINE_STATUS_CODES:
            return _declined_body(response)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"Network error calling payment API {path}: {e}")
        raise PaymentGatewayError(f"Payment processor unavailable: {e}") from e
    except ValueError as e:
        logger.error(f"Invalid JSON from payment API {path}: {e}")
        raise PaymentGatewayError("Payment processor returned an invalid response") from e


def _declined_body(response: requests.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}
    body.setdefault("status", "failed")
    logger.warning(f"Payment API refused the request with HTTP {response.status_code}")
    return body


def _to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


def charge(
    amount: Decimal,
    currency: str,
    payment_method_ref: str,
    *,
    description: str = "",
    idempotency_key: str | None = None,
) -> PaymentResult:
    """
    Authorize and capture ``amount`` against a stored payment method.

    Returns:
        PaymentResult: ``approved`` is False when the processor declined,
        including refusals sent as HTTP 400, 402 or 422

    Raises:
        PaymentGatewayError: the processor could not be reached
    """
    logger.info(f"Charging {amount} {currency} to payment method {payment_method_ref}")

    if _is_emulated():
        reference = f"pay_{uuid.uuid4().hex[:16]}"
        logger.warning(f"Payment API key is not configured, emulating approved charge {reference}")
        return PaymentResult(approved=True, reference=reference)

    result = _post(
        "charges",
        {
            "amount": _to_minor_units(amount),
            "currency": currency,
            "payment_method": payment_method_ref,
            "capture": True,
            "description": description,
            "idempotency_key": idempotency_key,
        },
    )

    if result.get("status") in ("succeeded", "captured"):
        logger.info(f"Charge {result.get('id')} approved")
        return PaymentResult(approved=True, reference=result.get("id", ""))

    reason = (result.get("error") or {}).get("message") or result.get("failure_message") or "declined"
    logger.warning(f"Charge to {payment_method_ref} declined: {reason}")
    return PaymentResult(approved=False, decline_reason=reason)


def refund(payment_reference: str, amount: Decimal | None = None) -> bool:
    """
    Refund a captured charge, fully or partially.

    Returns:
        bool: True if the processor accepted the refund
    """
    logger.info(f"Refunding payment {payment_reference} amount={amount}")

    if _is_emulated():
        logger.warning(f"Payment API key is not configured, emulating refund of {payment_reference}")
        return True

    payload: dict = {"charge": payment_reference}
    if amount is not None:
        payload["amount"] = _to_minor_units(amount)

    try:
        result = _post("refunds", payload)
    except PaymentGatewayError:
        return False
    return result.get("status") in ("succeeded", "pending")
