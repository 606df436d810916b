from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(eq=False)
class IntakeError(Exception):
    code: str
    message: str
    status_code: int
    field: Optional[str] = None
    contact: Optional[dict[str, str]] = None
    quota: Optional[dict[str, Any]] = None
    upgrade_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "error": self.code, "message": self.message}
        if self.field:
            payload["field"] = self.field
        if self.contact is not None:
            payload["contact"] = self.contact
        if self.quota is not None:
            payload["quota"] = self.quota
        if self.upgrade_url:
            payload["upgrade_url"] = self.upgrade_url
        return payload


class ValidationError(IntakeError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(code="validation_error", message=message, status_code=400, field=field)


class PropertyNotFoundError(IntakeError):
    def __init__(self, message: str = "Property not found"):
        super().__init__(code="property_not_found", message=message, status_code=404)


class BookingsUnavailableError(IntakeError):
    def __init__(self, message: str = "Bookings are currently unavailable", contact: Optional[dict[str, str]] = None):
        super().__init__(code="bookings_unavailable", message=message, status_code=403, contact=contact)


class PaymentNotImplementedError(IntakeError):
    def __init__(self, contact: dict[str, str]):
        super().__init__(
            code="payment_not_implemented",
            message="Payment processing will be available soon. Please contact the property directly.",
            status_code=501,
            contact=contact,
        )


class DuplicateBookingError(IntakeError):
    def __init__(self, contact: Optional[dict[str, str]] = None):
        super().__init__(
            code="duplicate_booking",
            message="This booking has already been submitted. Please check your email or contact the property.",
            status_code=409,
            contact=contact,
        )


class ThrottledError(IntakeError):
    def __init__(
        self,
        message: str,
        contact: Optional[dict[str, str]] = None,
        quota: Optional[dict[str, Any]] = None,
        upgrade_url: Optional[str] = None,
    ):
        super().__init__(
            code="rate_limited",
            message=message,
            status_code=429,
            contact=contact,
            quota=quota,
            upgrade_url=upgrade_url,
        )


class ForwardingError(IntakeError):
    def __init__(self, contact: Optional[dict[str, str]] = None):
        super().__init__(
            code="forward_failed",
            message="Booking system temporarily unavailable. Please try again or contact the property directly.",
            status_code=500,
            contact=contact,
        )


class ProcessingError(IntakeError):
    def __init__(self):
        super().__init__(
            code="processing_error",
            message="Unable to process booking. Please try again.",
            status_code=500,
        )
