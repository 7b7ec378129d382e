"""Error taxonomy of the reservation core.

Booking-path errors are raised synchronously to the caller and mapped to
HTTP responses by the views via ``http_status``.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for errors returned to the booking caller."""

    http_status = 400
    code = "booking_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code).strip()

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "detail": self.message}


class AvailabilityConflict(BookingError):
    """The requested window is no longer free."""

    http_status = 409
    code = "availability_conflict"


class InvalidTimeRange(BookingError):
    """The requested window is empty or outside the spot's schedule."""

    http_status = 400
    code = "invalid_time_range"


class PreconditionFailed(BookingError):
    """The reservation is not in a state that permits this action."""

    http_status = 412
    code = "precondition_failed"


class PaymentRequired(BookingError):
    """A stored payment method is required."""

    http_status = 402
    code = "payment_required"


class PaymentFailure(BookingError):
    """The payment processor declined or failed the charge."""

    http_status = 402
    code = "payment_failure"

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data


class NotFound(BookingError):
    """Unknown reservation or spot."""

    http_status = 404
    code = "not_found"
