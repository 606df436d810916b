"""
Booking intake pipeline.

Received -> Validated -> ConfigChecked -> QuotaEvaluated -> DedupChecked
-> RateChecked -> Enriched -> Forwarded -> Completed, with Rejected
reachable from the checks and from the forward. Notification dispatch is
handed back to the caller to run after the response is sent; its outcome
never affects the booking.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, Optional

from .config import Settings
from .directory import PropertyDirectory
from .dispatcher import DispatchReport, NotificationDispatcher
from .enrichment import Provenance, enrich
from .errors import (
    BookingsUnavailableError,
    DuplicateBookingError,
    ForwardingError,
    IntakeError,
    PaymentNotImplementedError,
    PropertyNotFoundError,
    ThrottledError,
    ValidationError,
)
from .forwarder import SinkError, SinkForwarder, default_partition_name
from .guards import DedupGuard, RateLimiter, booking_fingerprint
from .log import log, mask_dedup_key
from .notifications import build as build_instructions
from .quota import QuotaEnforcer
from .schemas import BookingAccepted, BookingRequest
from .validation import validate

SUCCESS_MESSAGE = "Booking received successfully! The property will contact you soon."
RATE_LIMITED_MESSAGE = "Too many booking requests. Please try again in an hour or contact the property directly."


class BookingState(str, Enum):
    RECEIVED = "Received"
    VALIDATED = "Validated"
    CONFIG_CHECKED = "ConfigChecked"
    QUOTA_EVALUATED = "QuotaEvaluated"
    DEDUP_CHECKED = "DedupChecked"
    RATE_CHECKED = "RateChecked"
    ENRICHED = "Enriched"
    FORWARDED = "Forwarded"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


@dataclass
class BookingRun:
    state: BookingState = BookingState.RECEIVED
    history: list[BookingState] = field(default_factory=lambda: [BookingState.RECEIVED])
    rejection: Optional[str] = None

    def advance(self, state: BookingState) -> None:
        self.state = state
        self.history.append(state)

    def reject(self, error: IntakeError) -> IntakeError:
        self.rejection = error.code
        self.advance(BookingState.REJECTED)
        return error


@dataclass
class BookingResult:
    response: BookingAccepted
    run: BookingRun
    notify: Optional[Callable[[], Awaitable[DispatchReport]]] = None


class BookingPipeline:
    def __init__(
        self,
        settings: Settings,
        directory: PropertyDirectory,
        quota: QuotaEnforcer,
        dedup: DedupGuard,
        rate_limiter: RateLimiter,
        forwarder: SinkForwarder,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings
        self.directory = directory
        self.quota = quota
        self.dedup = dedup
        self.rate_limiter = rate_limiter
        self.forwarder = forwarder
        self.dispatcher = dispatcher
        self.clock = clock

    async def submit(
        self,
        request: BookingRequest,
        provenance: Provenance,
        run: Optional[BookingRun] = None,
    ) -> BookingResult:
        run = run or BookingRun()

        result = validate(request)
        if not result.valid:
            raise run.reject(ValidationError(result.reason or "Invalid booking", field=result.field))
        run.advance(BookingState.VALIDATED)

        config = await self.directory.get(request.slug)
        if config is None:
            raise run.reject(PropertyNotFoundError())
        if not config.is_active:
            raise run.reject(BookingsUnavailableError(contact=config.contact))
        if config.payment_enabled:
            raise run.reject(PaymentNotImplementedError(contact=config.contact))
        run.advance(BookingState.CONFIG_CHECKED)

        decision = await self.quota.evaluate(config)
        config = decision.config
        log(f"quota {config.slug}: {decision.reason} allowed={sorted(decision.allowed_channels)}")
        run.advance(BookingState.QUOTA_EVALUATED)

        fingerprint = booking_fingerprint(request)
        if await self.dedup.is_duplicate(fingerprint):
            log(f"duplicate detected: {mask_dedup_key(fingerprint)}")
            raise run.reject(DuplicateBookingError(contact=config.contact))
        run.advance(BookingState.DEDUP_CHECKED)

        ceiling = config.rate_limit_per_hour(self.settings.default_rate_limit_per_hour)
        if await self.rate_limiter.is_limited(config.slug, ceiling):
            log(f"rate limit exceeded for {config.slug}")
            raise run.reject(
                ThrottledError(
                    RATE_LIMITED_MESSAGE,
                    contact=config.contact,
                    quota=decision.snapshot,
                    upgrade_url=decision.upgrade_url,
                )
            )
        run.advance(BookingState.RATE_CHECKED)

        now = self.clock()
        enriched = enrich(request, config, provenance, now=now)
        run.advance(BookingState.ENRICHED)

        endpoint = await self.directory.resolve_sink_url(config, self.settings.booking_webhook_url)
        partition = config.partition_name or default_partition_name(now)
        try:
            await self.forwarder.forward(enriched, endpoint, self.settings.hmac_secret, partition)
        except SinkError as e:
            log(f"forward failed for {config.slug}: {e}")
            raise run.reject(ForwardingError(contact=config.contact)) from e
        run.advance(BookingState.FORWARDED)

        notify = None
        if config.notifications_enabled:
            instructions = build_instructions(enriched, config, decision.allowed_channels)
            notify = partial(self.dispatcher.dispatch, enriched, config, instructions)

        # only a confirmed forward may consume the dedup window and rate budget
        await self.dedup.reserve(fingerprint)
        await self.rate_limiter.increment(config.slug)
        run.advance(BookingState.COMPLETED)

        response = BookingAccepted(
            message=SUCCESS_MESSAGE,
            bookingId=enriched.booking_id,
            mode=config.booking_mode,
            quota_info=decision.snapshot,
        )
        return BookingResult(response=response, run=run, notify=notify)
