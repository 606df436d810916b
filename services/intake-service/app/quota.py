"""
Plan-tier notification quota.

Quota only narrows which notification channels may fire; it never rejects
a booking. Usage counters live on the tenant config document and are
updated with plain read-modify-write, so concurrent bookings for one
tenant can over- or under-count slightly.
"""
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from .directory import PropertyDirectory
from .log import log
from .models import (
    ALWAYS_AVAILABLE_CHANNEL,
    ENTRY_TIERS,
    METERED_CHANNELS,
    Channel,
    PropertyConfig,
    QuotaDecision,
)

UPGRADE_URL = "/pricing"
UNMETERED_PAID_CHANNELS = (Channel.TELEGRAM, Channel.DISCORD, Channel.SLACK)
ENTRY_TIER_PRICES = {"starter": "₹99/month"}


def current_month(now: datetime) -> str:
    return now.strftime("%Y-%m")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _plan_label(tier: str) -> str:
    return tier[:1].upper() + tier[1:]


class QuotaEnforcer:
    def __init__(self, directory: PropertyDirectory, clock: Callable[[], datetime] = _utcnow):
        self.directory = directory
        self.clock = clock

    async def reset_if_new_month(self, config: PropertyConfig) -> PropertyConfig:
        month = current_month(self.clock())
        if config.quota_month == month:
            return config

        log(f"quota month changed ({config.quota_month or '-'} -> {month}), resetting {config.slug}")
        updates = {f"quota_{c.value}_used": 0 for c in METERED_CHANNELS}
        updates["quota_used_month"] = month
        refreshed = config.with_values(**updates)
        await self.directory.save(refreshed)
        return refreshed

    async def evaluate(self, config: PropertyConfig) -> QuotaDecision:
        config = await self.reset_if_new_month(config)
        month = config.quota_month
        tier = config.plan_tier

        if tier in ENTRY_TIERS:
            snapshot = {"plan": _plan_label(tier)}
            if tier in ENTRY_TIER_PRICES:
                snapshot["price"] = ENTRY_TIER_PRICES[tier]
            for channel in METERED_CHANNELS:
                snapshot[channel.value] = {"limit": 0, "used": 0, "remaining": 0}
            snapshot["email"] = "unlimited"
            snapshot["month"] = month
            return QuotaDecision(
                allowed_channels={ALWAYS_AVAILABLE_CHANNEL.value},
                snapshot=snapshot,
                reason=f"{tier}_tier",
                message=f"{_plan_label(tier)} tier: Email notifications only",
                upgrade_url=UPGRADE_URL,
                config=config,
            )

        snapshot = {"plan": _plan_label(tier)}
        if config.plan_price is not None:
            snapshot["price"] = f"₹{config.plan_price}/month"

        allowed = {ALWAYS_AVAILABLE_CHANNEL.value}
        allowed.update(c.value for c in UNMETERED_PAID_CHANNELS)
        exhausted = []
        for channel in METERED_CHANNELS:
            usage = config.quota_for(channel)
            snapshot[channel.value] = usage.to_dict()
            if usage.remaining > 0:
                allowed.add(channel.value)
            else:
                exhausted.append(channel.value)
        snapshot["email"] = "unlimited"
        snapshot["month"] = month

        whatsapp_left = config.quota_for(Channel.WHATSAPP).remaining
        if whatsapp_left > 0:
            message = f"WhatsApp available: {whatsapp_left} remaining"
        else:
            message = "WhatsApp quota exceeded, email only"

        return QuotaDecision(
            allowed_channels=allowed,
            snapshot=snapshot,
            reason="quota_exhausted" if exhausted else "quota_available",
            message=message,
            upgrade_url=UPGRADE_URL if exhausted else None,
            config=config,
        )

    async def record_usage(self, config: PropertyConfig, channels_sent: Iterable[str]) -> Optional[PropertyConfig]:
        sent = set(channels_sent)
        metered = [c for c in METERED_CHANNELS if c.value in sent]
        if not metered:
            return None

        # re-read so the increment lands on the freshest document we can see
        latest = await self.directory.get(config.slug) or config
        latest = await self.reset_if_new_month(latest)
        updates = {}
        for channel in metered:
            updates[f"quota_{channel.value}_used"] = latest.quota_for(channel).used + 1
        updated = latest.with_values(**updates)
        await self.directory.save(updated)
        log(
            f"quota incremented {config.slug}: "
            + ", ".join(f"{c.value} {updates[f'quota_{c.value}_used']}/{latest.quota_for(c).limit}" for c in metered)
        )
        return updated
