import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from .models import Channel, EnrichedBooking, PropertyConfig
from .schemas import BookingRequest
from .validation import is_valid_email


@dataclass(frozen=True)
class Provenance:
    source_ip: str = "unknown"
    user_agent: str = "unknown"
    request_id: str = "unknown"


def _normalize_email(value: Optional[str]) -> str:
    if value is None:
        return ""
    # stray whitespace/newlines in stored addresses break mail routing
    return re.sub(r"\s+", "", str(value))


def resolve_owner_email(config: PropertyConfig) -> str:
    override = _normalize_email(config.owner_address(Channel.EMAIL))
    if is_valid_email(override):
        return override
    contact = _normalize_email(config.contact["email"])
    if is_valid_email(contact):
        return contact
    return ""


def enrich(
    request: BookingRequest,
    config: PropertyConfig,
    provenance: Provenance,
    now: Optional[datetime] = None,
    booking_id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> EnrichedBooking:
    now = now or datetime.now(timezone.utc)
    return EnrichedBooking(
        booking_id=booking_id_factory(),
        timestamp=now.isoformat(),
        slug=request.slug or config.slug,
        name=request.name or "",
        email=request.email,
        phone=request.phone,
        check_in=request.check_in,
        check_out=request.check_out,
        guests=request.guests,
        room_type=request.room_type,
        notes=request.notes,
        telegram_id=request.telegram_id,
        source_ip=provenance.source_ip,
        user_agent=provenance.user_agent,
        request_id=provenance.request_id,
        owner_email=resolve_owner_email(config),
        property_name=config.display_name,
        config_version=config.version,
    )
