import asyncio
from dataclasses import dataclass, field
from typing import Optional

from .channels import ChannelProvider
from .guards import RateLimiter
from .log import log, safe_booking_log
from .models import EnrichedBooking, PropertyConfig
from .notifications import NotificationInstructionSet, channels_in
from .quota import QuotaEnforcer


@dataclass
class DeliveryOutcome:
    role: str
    channel: str
    ok: bool
    error: Optional[str] = None


@dataclass
class DispatchReport:
    slug: str
    skipped: Optional[str] = None
    outcomes: list[DeliveryOutcome] = field(default_factory=list)

    @property
    def sent_channels(self) -> set[str]:
        return {o.channel for o in self.outcomes if o.ok}

    @property
    def failures(self) -> list[DeliveryOutcome]:
        return [o for o in self.outcomes if not o.ok]


class NotificationDispatcher:
    """
    Fire-and-forget delivery. Runs after the booking response has been
    sent; nothing here is retried and nothing is raised to the caller.
    """

    def __init__(
        self,
        providers: dict[str, ChannelProvider],
        notify_limiter: RateLimiter,
        quota: QuotaEnforcer,
    ):
        self.providers = providers
        self.notify_limiter = notify_limiter
        self.quota = quota

    async def _send_one(self, slug: str, role: str, channel: str, instruction: dict) -> DeliveryOutcome:
        provider = self.providers.get(channel)
        if provider is None:
            return DeliveryOutcome(role, channel, ok=False, error="no provider")
        try:
            await provider.send(slug, role, instruction)
        except Exception as e:
            return DeliveryOutcome(role, channel, ok=False, error=str(e))
        return DeliveryOutcome(role, channel, ok=True)

    async def dispatch(
        self,
        enriched: EnrichedBooking,
        config: PropertyConfig,
        instructions: NotificationInstructionSet,
    ) -> DispatchReport:
        slug = config.slug
        report = DispatchReport(slug=slug)
        try:
            if not instructions:
                report.skipped = "no_instructions"
                return report

            if await self.notify_limiter.is_limited(slug, config.notify_limit_per_hour):
                log(f"notification rate limit exceeded for {slug}")
                report.skipped = "notify_rate_limited"
                return report
            await self.notify_limiter.increment(slug)

            roles = sorted(instructions)
            log(
                f"dispatching booking={safe_booking_log(enriched.to_payload())} "
                f"roles={roles} channels={sorted(channels_in(instructions))}"
            )

            tasks = [
                self._send_one(slug, role, channel, instruction)
                for role, per_role in instructions.items()
                for channel, instruction in per_role.items()
            ]
            report.outcomes = list(await asyncio.gather(*tasks))

            for outcome in report.failures:
                log(f"notify {outcome.role}/{outcome.channel} failed for {slug}: {outcome.error}")

            await self.quota.record_usage(config, report.sent_channels)
        except Exception as e:
            log(f"notification dispatch error for {slug}: {e}")
            report.skipped = report.skipped or "error"
        return report
