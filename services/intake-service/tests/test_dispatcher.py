import asyncio
import json
from dataclasses import replace
from datetime import datetime, timezone

import httpx

from shared.kv_store import InMemoryKeyValueStore

from app.channels import build_providers
from app.directory import PropertyDirectory
from app.dispatcher import NotificationDispatcher
from app.enrichment import Provenance, enrich
from app.guards import RateLimiter
from app.models import PropertyConfig
from app.notifications import build
from app.quota import QuotaEnforcer
from app.schemas import BookingRequest

from conftest import FakeUpstreams, make_config


class Recorder:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def send(self, slug, role, instruction):
        self.calls.append((slug, role, instruction))
        if self.fail:
            raise RuntimeError("provider down")


def _setup(providers, **config_overrides):
    store = InMemoryKeyValueStore()
    directory = PropertyDirectory(store)
    clock = lambda: datetime(2026, 5, 2, tzinfo=timezone.utc)
    dispatcher = NotificationDispatcher(
        providers=providers,
        notify_limiter=RateLimiter(store, prefix="notify_rate"),
        quota=QuotaEnforcer(directory, clock=clock),
    )
    raw = make_config(
        plan_tier="standard",
        quota_whatsapp_monthly=5,
        quota_whatsapp_used=1,
        quota_used_month="2026-05",
        **config_overrides,
    )
    config = PropertyConfig.from_dict("lakeview", raw)
    enriched = enrich(
        BookingRequest.model_validate({"name": "Asha", "slug": "lakeview", "phone": "+911234567890"}),
        config,
        Provenance(),
        booking_id_factory=lambda: "bk-1",
    )
    return dispatcher, directory, store, config, enriched


def test_one_failing_channel_does_not_block_others_and_only_sent_metered_usage_counts():
    email, whatsapp = Recorder(fail=True), Recorder()
    dispatcher, directory, _, config, enriched = _setup({"email": email, "whatsapp": whatsapp})
    instructions = build(enriched, config, {"email", "whatsapp"})

    async def scenario():
        await directory.save(config)
        return await dispatcher.dispatch(enriched, config, instructions)

    report = asyncio.run(scenario())

    assert len(email.calls) == 1 and len(whatsapp.calls) == 1
    assert report.sent_channels == {"whatsapp"}
    assert [f.channel for f in report.failures] == ["email"]
    stored = asyncio.run(directory.get("lakeview"))
    assert stored.raw["quota_whatsapp_used"] == 2


def test_failed_metered_send_does_not_consume_quota():
    dispatcher, directory, _, config, enriched = _setup({"email": Recorder(), "whatsapp": Recorder(fail=True)})
    instructions = build(enriched, config, {"email", "whatsapp"})

    async def scenario():
        await directory.save(config)
        await dispatcher.dispatch(enriched, config, instructions)
        return await directory.get("lakeview")

    assert asyncio.run(scenario()).raw["quota_whatsapp_used"] == 1


def test_notification_ceiling_is_separate_and_enforced():
    email = Recorder()
    raw_notifications = dict(make_config()["notifications"], maxPerHour=2)
    dispatcher, _, store, config, enriched = _setup({"email": email}, notifications=raw_notifications)
    instructions = build(enriched, config, {"email"})

    async def scenario():
        reports = [await dispatcher.dispatch(enriched, config, instructions) for _ in range(3)]
        return reports, await store.get("notify_rate:lakeview"), await store.get("rate:lakeview")

    reports, notify_count, booking_count = asyncio.run(scenario())

    assert [r.skipped for r in reports] == [None, None, "notify_rate_limited"]
    assert len(email.calls) == 2
    assert notify_count == "2"
    assert booking_count is None


def test_empty_instruction_set_is_a_no_op():
    dispatcher, _, store, config, enriched = _setup({})
    report = asyncio.run(dispatcher.dispatch(enriched, config, {}))
    assert report.skipped == "no_instructions"
    assert asyncio.run(store.get("notify_rate:lakeview")) is None


def test_unexpected_errors_never_escape():
    class ExplodingQuota:
        async def record_usage(self, config, channels):
            raise RuntimeError("boom")

    dispatcher, _, store, config, enriched = _setup({"email": Recorder()})
    dispatcher.quota = ExplodingQuota()
    report = asyncio.run(dispatcher.dispatch(enriched, config, build(enriched, config, {"email"})))
    assert report.skipped == "error"


def test_http_providers_wire_format(settings):
    upstreams = FakeUpstreams()
    providers = build_providers(settings, httpx.MockTransport(upstreams.handler))
    dispatcher, _, _, config, enriched = _setup(providers)
    instructions = build(enriched, config, {"email", "whatsapp"})

    report = asyncio.run(dispatcher.dispatch(enriched, config, instructions))

    assert report.sent_channels == {"email", "whatsapp"}
    mail = upstreams.json_to("mail.test")[0]
    assert mail["personalizations"] == [{"to": [{"email": "owner@lakeview.test"}]}]
    assert mail["from"]["email"] == "bookings@platform.test"
    assert mail["reply_to"] == {"email": "stay@lakeview.test"}

    event = json.loads(upstreams.to("relay.test")[0].content)
    assert event["event_type"] == "booking.notification"
    assert event["tenant"] == {"slug": "lakeview"}
    assert event["data"]["channel"] == "whatsapp"
    assert event["data"]["instruction"]["to"] == "whatsapp:+919876543210"


def test_relay_channels_fail_without_relay_url(settings):
    providers = build_providers(replace(settings, notification_webhook_url=None), httpx.MockTransport(FakeUpstreams().handler))
    dispatcher, _, _, config, enriched = _setup(providers)
    report = asyncio.run(dispatcher.dispatch(enriched, config, build(enriched, config, {"email", "whatsapp"})))
    assert report.sent_channels == {"email"}
    assert "NOTIFICATION_WEBHOOK_URL" in report.failures[0].error
