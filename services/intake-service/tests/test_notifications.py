from datetime import datetime, timezone

from app.enrichment import Provenance, enrich
from app.models import PropertyConfig
from app.notifications import build, channels_in, format_date, format_whatsapp_number
from app.schemas import BookingRequest

from conftest import make_config


def _enriched(config: PropertyConfig, **booking):
    data = {"name": "Asha", "slug": "lakeview", "phone": "+911234567890", "checkIn": "2026-05-01"}
    data.update(booking)
    return enrich(
        BookingRequest.model_validate(data),
        config,
        Provenance(source_ip="203.0.113.9", user_agent="pytest", request_id="req-1"),
        now=datetime(2026, 4, 20, 9, 30, tzinfo=timezone.utc),
        booking_id_factory=lambda: "bk-1",
    )


def _config(**notification_overrides) -> PropertyConfig:
    raw = make_config()
    raw["notifications"].update(notification_overrides)
    return PropertyConfig.from_dict("lakeview", raw)


ALL_OWNER = ["email", "whatsapp", "sms", "telegram", "discord", "slack"]
EVERYTHING_ALLOWED = {"email", "whatsapp", "sms", "telegram", "discord", "slack"}


def test_trial_quota_limits_owner_to_email():
    config = _config(channels=["whatsapp", "email"])
    instructions = build(_enriched(config), config, {"email"})

    assert set(instructions) == {"owner"}
    assert set(instructions["owner"]) == {"email"}
    email = instructions["owner"]["email"]
    assert email["to"] == "owner@lakeview.test"
    assert email["subject"] == "🎉 New Booking - Asha"
    assert "bk-1" in email["htmlBody"]


def test_no_instruction_without_destination_address():
    config = _config(channels=ALL_OWNER, ownerWhatsapp="", ownerSMS=None, ownerTelegram="")
    instructions = build(_enriched(config), config, EVERYTHING_ALLOWED)
    assert "whatsapp" not in instructions["owner"]
    assert "sms" not in instructions["owner"]
    assert "telegram" not in instructions["owner"]
    assert "email" in instructions["owner"]


def test_no_owner_email_when_no_valid_address_resolves():
    raw = make_config(contact={"phone": "", "email": "broken"})
    raw["notifications"]["ownerEmail"] = "also broken"
    config = PropertyConfig.from_dict("lakeview", raw)
    instructions = build(_enriched(config), config, EVERYTHING_ALLOWED)
    assert "email" not in instructions.get("owner", {})


def test_channels_are_the_intersection_of_enabled_allowed_and_addressed():
    config = _config(
        channels=ALL_OWNER,
        ownerSMS="+919999999999",
        ownerTelegram="12345",
        ownerDiscord="https://discord.test/hook",
        ownerSlack="https://slack.test/hook",
    )
    allowed = {"email", "whatsapp", "telegram", "slack"}
    instructions = build(_enriched(config), config, allowed)
    assert set(instructions["owner"]) == {"email", "whatsapp", "telegram", "slack"}
    assert channels_in(instructions) <= allowed


def test_owner_payload_shapes():
    config = _config(
        channels=ALL_OWNER,
        ownerSMS="+919999999999",
        ownerTelegram="12345",
        ownerDiscord="https://discord.test/hook",
        ownerSlack="https://slack.test/hook",
    )
    owner = build(_enriched(config), config, EVERYTHING_ALLOWED)["owner"]

    assert owner["whatsapp"]["to"] == "whatsapp:+919876543210"
    assert "May 1, 2026" in owner["whatsapp"]["message"]
    assert owner["telegram"] == {"chatId": "12345", "message": owner["telegram"]["message"], "parseMode": "Markdown"}
    assert owner["discord"]["webhookUrl"] == "https://discord.test/hook"
    assert owner["discord"]["embeds"][0]["footer"]["text"] == "Lakeview Cottages • bk-1"
    assert owner["slack"]["blocks"][0]["type"] == "header"
    assert owner["sms"]["message"] == "New booking: Asha, +911234567890. May 1, 2026. ID: bk-1"


def test_guest_channels_need_customer_prefix_and_guest_address():
    config = _config(
        notifyCustomer=True,
        channels=["email", "customer_email", "customer_sms", "customer_telegram"],
    )
    enriched = _enriched(config, email="asha@example.com")
    guest = build(enriched, config, {"email", "sms"})["guest"]

    assert set(guest) == {"email", "sms"}
    assert guest["email"]["to"] == "asha@example.com"
    assert guest["email"]["subject"] == "✅ Booking Confirmation - Lakeview Cottages"
    assert guest["sms"]["message"].startswith("Lakeview Cottages: Booking confirmed!")


def test_guest_email_skipped_when_guest_gave_no_email():
    config = _config(notifyCustomer=True, notifyOwner=False, channels=["customer_email"])
    assert build(_enriched(config), config, {"email"}) == {}


def test_hindi_locale_and_unknown_language_fallback():
    hindi = _config(language="hi")
    assert build(_enriched(hindi), hindi, {"email"})["owner"]["email"]["subject"] == "🎉 नई बुकिंग - Asha"

    unknown = _config(language="fr")
    assert build(_enriched(unknown), unknown, {"email"})["owner"]["email"]["subject"] == "🎉 New Booking - Asha"


def test_owner_switch_off_builds_nothing_for_owner():
    config = _config(notifyOwner=False)
    assert build(_enriched(config), config, EVERYTHING_ALLOWED) == {}


def test_user_text_is_escaped_in_html():
    config = _config()
    enriched = _enriched(config, name="<b>Asha</b>", notes="<script>x</script>")
    body = build(enriched, config, {"email"})["owner"]["email"]["htmlBody"]
    assert "<script>" not in body
    assert "&lt;b&gt;Asha&lt;/b&gt;" in body


def test_format_helpers():
    assert format_date("2026-05-01") == "May 1, 2026"
    assert format_date("someday") == "someday"
    assert format_whatsapp_number("98765 43210") == "whatsapp:+919876543210"
    assert format_whatsapp_number("+44 20 7946 0958") == "whatsapp:+442079460958"
