import re
from dataclasses import dataclass
from typing import Optional

from .schemas import BookingRequest

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^(?=.*\d)\+?[0-9()\-.\s]{7,20}$")
MAX_NAME_LENGTH = 100


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    field: Optional[str] = None
    reason: Optional[str] = None


VALID = ValidationResult(valid=True)


def _invalid(field: str, reason: str) -> ValidationResult:
    return ValidationResult(valid=False, field=field, reason=reason)


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def is_valid_phone(value: Optional[str]) -> bool:
    return bool(value) and PHONE_RE.match(value) is not None


def validate(request: Optional[BookingRequest]) -> ValidationResult:
    """Structural checks only; never raises."""
    if request is None:
        return _invalid("body", "Booking details are required")

    name = request.name or ""
    if not name:
        return _invalid("name", "Name is required")
    if len(name) > MAX_NAME_LENGTH:
        return _invalid("name", "Name too long")

    if not request.slug:
        return _invalid("slug", "Invalid property")

    if not request.email and not request.phone:
        return _invalid("contact", "Email or phone is required")
    if request.email and not is_valid_email(request.email):
        return _invalid("email", "Invalid email format")
    if request.phone and not is_valid_phone(request.phone):
        return _invalid("phone", "Invalid phone number")

    return VALID
