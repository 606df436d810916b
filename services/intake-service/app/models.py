from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class Channel(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    SMS = "sms"
    TELEGRAM = "telegram"
    DISCORD = "discord"
    SLACK = "slack"


class Recipient(str, Enum):
    OWNER = "owner"
    GUEST = "guest"


class PropertyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


ALWAYS_AVAILABLE_CHANNEL = Channel.EMAIL
METERED_CHANNELS = (Channel.WHATSAPP, Channel.SMS)
ENTRY_TIERS = ("trial", "starter")
DEFAULT_ENABLED_CHANNELS = ["whatsapp", "email"]
DEFAULT_PLAN_TIER = "trial"
GUEST_CHANNEL_PREFIX = "customer_"

OWNER_ADDRESS_FIELDS = {
    Channel.EMAIL: "ownerEmail",
    Channel.WHATSAPP: "ownerWhatsapp",
    Channel.SMS: "ownerSMS",
    Channel.TELEGRAM: "ownerTelegram",
    Channel.DISCORD: "ownerDiscord",
    Channel.SLACK: "ownerSlack",
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class ChannelQuota:
    limit: int
    used: int

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    def to_dict(self) -> dict[str, int]:
        return {"limit": self.limit, "used": self.used, "remaining": self.remaining}


@dataclass
class PropertyConfig:
    """
    Tenant configuration as stored in the property directory.

    The stored document is kept verbatim in `raw` so that counter updates
    write back every field, including ones this service does not read.
    """

    slug: str
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, slug: str, data: dict[str, Any]) -> "PropertyConfig":
        return cls(slug=slug, raw=copy.deepcopy(data))

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.raw)

    def with_values(self, **updates: Any) -> "PropertyConfig":
        data = self.to_dict()
        data.update(updates)
        return PropertyConfig(slug=self.slug, raw=data)

    def _section(self, name: str) -> dict[str, Any]:
        section = self.raw.get(name)
        return section if isinstance(section, dict) else {}

    @property
    def status(self) -> str:
        return _text(self.raw.get("status")).lower()

    @property
    def is_active(self) -> bool:
        return self.status == PropertyStatus.ACTIVE.value

    @property
    def plan_tier(self) -> str:
        return _text(self.raw.get("plan_tier")).lower() or DEFAULT_PLAN_TIER

    @property
    def plan_price(self) -> Any:
        return self.raw.get("plan_price")

    @property
    def quota_month(self) -> str:
        return _text(self.raw.get("quota_used_month"))

    def quota_for(self, channel: Channel) -> ChannelQuota:
        return ChannelQuota(
            limit=_int(self.raw.get(f"quota_{channel.value}_monthly")),
            used=_int(self.raw.get(f"quota_{channel.value}_used")),
        )

    @property
    def display_name(self) -> str:
        for key in ("name", "title", "slug"):
            value = _text(self.raw.get(key))
            if value:
                return value
        return self.slug

    @property
    def version(self) -> str:
        return _text(self.raw.get("updatedAt")) or "unknown"

    @property
    def address(self) -> str:
        return _text(self._section("location").get("address"))

    @property
    def contact(self) -> dict[str, str]:
        contact = self._section("contact")
        return {"phone": _text(contact.get("phone")), "email": _text(contact.get("email"))}

    @property
    def notifications(self) -> dict[str, Any]:
        return self._section("notifications")

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.notifications.get("enabled"))

    @property
    def notify_owner(self) -> bool:
        return bool(self.notifications.get("notifyOwner"))

    @property
    def notify_guest(self) -> bool:
        return bool(self.notifications.get("notifyCustomer"))

    @property
    def language(self) -> str:
        return _text(self.notifications.get("language")).lower() or "en"

    @property
    def enabled_channels(self) -> list[str]:
        channels = self.notifications.get("channels")
        if not isinstance(channels, list):
            return list(DEFAULT_ENABLED_CHANNELS)
        return [_text(c).lower() for c in channels if _text(c)]

    def owner_address(self, channel: Channel) -> str:
        return _text(self.notifications.get(OWNER_ADDRESS_FIELDS[channel]))

    @property
    def notify_limit_per_hour(self) -> int:
        return _int(self.notifications.get("maxPerHour"), 10) or 10

    def rate_limit_per_hour(self, default: int = 10) -> int:
        explicit = _int(self._section("rateLimit").get("maxPerHour"))
        if explicit > 0:
            return explicit
        return _int(self.notifications.get("maxPerHour"), default) or default

    @property
    def booking(self) -> dict[str, Any]:
        return self._section("booking")

    @property
    def payment_enabled(self) -> bool:
        payment = self.booking.get("payment")
        return bool(isinstance(payment, dict) and payment.get("enabled"))

    @property
    def booking_mode(self) -> str:
        return _text(self.booking.get("mode")) or "sheet"

    @property
    def partition_name(self) -> str:
        return _text(self.booking.get("sheetName"))

    @property
    def workspace_id(self) -> str:
        return _text(self.raw.get("workspaceId")) or _text(self.booking.get("workspaceId"))


@dataclass(frozen=True)
class EnrichedBooking:
    booking_id: str
    timestamp: str
    slug: str
    name: str
    email: Optional[str]
    phone: Optional[str]
    check_in: Optional[str]
    check_out: Optional[str]
    guests: Optional[str]
    room_type: Optional[str]
    notes: Optional[str]
    telegram_id: Optional[str]
    source_ip: str
    user_agent: str
    request_id: str
    owner_email: str
    property_name: str
    config_version: str

    def to_payload(self) -> dict[str, Any]:
        wire_names = {
            "booking_id": "bookingId",
            "check_in": "checkIn",
            "check_out": "checkOut",
            "room_type": "roomType",
            "telegram_id": "telegramId",
            "owner_email": "ownerEmail",
            "property_name": "propertyName",
        }
        payload = {}
        for key, value in asdict(self).items():
            if value is None:
                continue
            payload[wire_names.get(key, key)] = value
        return payload


@dataclass
class QuotaDecision:
    allowed_channels: set[str]
    snapshot: dict[str, Any]
    reason: str
    message: str
    upgrade_url: Optional[str]
    config: PropertyConfig
