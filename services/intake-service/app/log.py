from typing import Any, Optional

from .config import SERVICE_NAME


def log(message: str) -> None:
    print(f"[{SERVICE_NAME}] {message}")


def mask_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]


def mask_email(email: Optional[str]) -> Optional[str]:
    if not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) > 2:
        masked = local[0] + "*" * (len(local) - 2) + local[-1]
    else:
        masked = "*" * len(local)
    return f"{masked}@{domain}"


def safe_booking_log(payload: dict[str, Any]) -> dict[str, Any]:
    # network provenance and free text never leave the service unmasked
    return {
        "bookingId": payload.get("bookingId"),
        "name": payload.get("name"),
        "phone": mask_phone(payload.get("phone")),
        "email": mask_email(payload.get("email")),
        "checkIn": payload.get("checkIn"),
        "checkOut": payload.get("checkOut"),
        "guests": payload.get("guests"),
        "roomType": payload.get("roomType"),
        "timestamp": payload.get("timestamp"),
    }


def mask_dedup_key(key: str) -> str:
    """dedup:<slug>:<identifier>:<date> with the guest identifier masked."""
    parts = key.split(":")
    if len(parts) < 4:
        return key
    identifier = ":".join(parts[2:-1])
    if "@" in identifier:
        masked = mask_email(identifier)
    elif identifier == "unknown":
        masked = identifier
    else:
        masked = mask_phone(identifier)
    return ":".join([parts[0], parts[1], masked or "", parts[-1]])
