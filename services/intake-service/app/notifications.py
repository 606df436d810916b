"""
Notification instruction builder.

Pure: turns an enriched booking plus the tenant config into
{role: {channel: payload}}. A channel is rendered for a recipient only if
it is enabled for the tenant, allowed by the current quota decision, and
the recipient has an address for it.
"""
import html
import re
from typing import Any, Iterable, Optional

from dateutil import parser

from .locales import strings_for
from .models import GUEST_CHANNEL_PREFIX, Channel, EnrichedBooking, PropertyConfig, Recipient

NotificationInstructionSet = dict[str, dict[str, dict[str, Any]]]

DEFAULT_BRAND = "Webzyl"
DISCORD_EMBED_COLOR = 3447003
GUEST_CHANNELS = (Channel.EMAIL, Channel.SMS, Channel.TELEGRAM)


def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        dt = parser.isoparse(value)
    except (TypeError, ValueError):
        return value
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"


def format_timestamp(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        dt = parser.isoparse(value)
    except (TypeError, ValueError):
        return value
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}, {dt.strftime('%I:%M %p')}"


def format_whatsapp_number(phone: str) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        digits = "91" + digits
    return f"whatsapp:+{digits}"


def _lines(*lines: str) -> str:
    return "\n".join(line for line in lines if line is not None)


def _opt(value: Optional[str], template: str) -> str:
    return template.format(value) if value else ""


# ---------- owner renderers ----------

def owner_whatsapp_text(b: EnrichedBooking, config: PropertyConfig, t: dict[str, str]) -> str:
    brand = config.display_name or DEFAULT_BRAND
    return _lines(
        f"🎉 *{t['new_booking']}*",
        "",
        f"📝 *{t['details']}:*",
        f"{t['name']}: {b.name}",
        f"{t['phone']}: {b.phone or ''}",
        _opt(b.email, f"{t['email']}: {{}}"),
        "",
        f"📅 *{t['dates']}:*",
        f"{t['check_in']}: {format_date(b.check_in)}" if b.check_in else t["coming_soon"],
        _opt(format_date(b.check_out), f"{t['check_out']}: {{}}"),
        _opt(b.guests, f"{t['guests']}: {{}}"),
        _opt(b.room_type, f"{t['room']}: {{}}"),
        "",
        f"💬 *{t['message']}:*",
        b.notes or t["no_message"],
        "",
        f"⏰ {format_timestamp(b.timestamp)}",
        f"🆔 {b.booking_id}",
        "",
        f"_{t['powered_by'].format(property=brand)}_",
    )


def owner_telegram_text(b: EnrichedBooking, t: dict[str, str]) -> str:
    return _lines(
        f"🎉 *{t['new_booking']}*",
        "",
        f"📝 *{t['details']}:*",
        f"• {t['name']}: {b.name}",
        f"• {t['phone']}: {b.phone or ''}",
        _opt(b.email, f"• {t['email']}: {{}}"),
        "",
        f"📅 *{t['dates']}:*",
        _opt(format_date(b.check_in), f"• {t['check_in']}: {{}}"),
        _opt(format_date(b.check_out), f"• {t['check_out']}: {{}}"),
        _opt(b.guests, f"• {t['guests']}: {{}}"),
        _opt(b.room_type, f"• {t['room']}: {{}}"),
        "",
        f"💬 *{t['message']}:* {b.notes or t['no_message']}",
        "",
        f"🆔 {t['booking_id']}: `{b.booking_id}`",
    )


def owner_sms_text(b: EnrichedBooking, t: dict[str, str]) -> str:
    date = format_date(b.check_in) if b.check_in else t["soon"]
    return t["owner_sms"].format(name=b.name, phone=b.phone or "", date=date, booking_id=b.booking_id)


def owner_discord_payload(b: EnrichedBooking, config: PropertyConfig, t: dict[str, str], webhook_url: str) -> dict[str, Any]:
    customer = "\n".join(v for v in (b.name, b.phone, b.email) if v)
    if b.check_in:
        dates = f"{t['check_in']}: {format_date(b.check_in)}\n{t['check_out']}: {format_date(b.check_out)}"
    else:
        dates = t["coming_soon"]
    details = "\n".join(
        v for v in (_opt(b.guests, f"{t['guests']}: {{}}"), _opt(b.room_type, f"{t['room']}: {{}}")) if v
    )
    return {
        "webhookUrl": webhook_url,
        "content": None,
        "embeds": [
            {
                "title": f"🎉 {t['new_booking_short']}",
                "color": DISCORD_EMBED_COLOR,
                "fields": [
                    {"name": f"👤 {t['customer']}", "value": customer, "inline": False},
                    {"name": f"📅 {t['dates']}", "value": dates, "inline": True},
                    {"name": f"🛏️ {t['details']}", "value": details or "-", "inline": True},
                ],
                "footer": {"text": f"{config.display_name or DEFAULT_BRAND} • {b.booking_id}"},
                "timestamp": b.timestamp,
            }
        ],
    }


def owner_slack_payload(b: EnrichedBooking, config: PropertyConfig, t: dict[str, str], webhook_url: str) -> dict[str, Any]:
    fields = [
        {"type": "mrkdwn", "text": f"*{t['name']}:*\n{b.name}"},
        {"type": "mrkdwn", "text": f"*{t['phone']}:*\n{b.phone or ''}"},
    ]
    stay = []
    if b.check_in:
        stay.append({"type": "mrkdwn", "text": f"*{t['check_in']}:*\n{format_date(b.check_in)}"})
    if b.guests:
        stay.append({"type": "mrkdwn", "text": f"*{t['guests']}:*\n{b.guests}"})

    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": f"🎉 {t['new_booking_short']}", "emoji": True}},
        {"type": "section", "fields": fields},
    ]
    if stay:
        blocks.append({"type": "section", "fields": stay})
    blocks.append(
        {"type": "context", "elements": [{"type": "mrkdwn", "text": f"{config.display_name or DEFAULT_BRAND} • {b.booking_id}"}]}
    )
    return {"webhookUrl": webhook_url, "text": f"🎉 {t['new_booking']}", "blocks": blocks}


def owner_email_html(b: EnrichedBooking, t: dict[str, str]) -> str:
    e = html.escape
    rows = [
        f"<div class=\"detail-row\"><strong>{t['name']}:</strong> {e(b.name)}</div>",
        f"<div class=\"detail-row\"><strong>{t['phone']}:</strong> {e(b.phone or '')}</div>",
    ]
    if b.email:
        rows.append(f"<div class=\"detail-row\"><strong>{t['email']}:</strong> {e(b.email)}</div>")

    stay = ""
    if b.check_in:
        stay_rows = [f"<div class=\"detail-row\"><strong>{t['check_in']}:</strong> {format_date(b.check_in)}</div>"]
        if b.check_out:
            stay_rows.append(f"<div class=\"detail-row\"><strong>{t['check_out']}:</strong> {format_date(b.check_out)}</div>")
        if b.guests:
            stay_rows.append(f"<div class=\"detail-row\"><strong>{t['guests']}:</strong> {e(b.guests)}</div>")
        stay = f"<div class=\"booking-card\"><h3>📅 {t['booking_dates']}</h3>{''.join(stay_rows)}</div>"

    notes = f"<p><strong>💬 {t['message']}:</strong> {e(b.notes)}</p>" if b.notes else ""
    return (
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\"></head><body>"
        "<div class=\"container\">"
        f"<div class=\"header\"><h1>🎉 {t['new_booking_short']}</h1></div>"
        "<div class=\"content\">"
        f"<div class=\"booking-card\"><h3>👤 {t['customer_details']}</h3>{''.join(rows)}</div>"
        f"{stay}{notes}"
        f"<p><strong>🆔 {t['booking_id']}:</strong> {e(b.booking_id)}</p>"
        "</div></div></body></html>"
    )


# ---------- guest renderers ----------

def guest_telegram_text(b: EnrichedBooking, config: PropertyConfig, t: dict[str, str]) -> str:
    return _lines(
        f"✅ *{t['booking_confirmed']}*",
        "",
        f"{t['dear']} {b.name},",
        "",
        t["thanks"],
        "",
        f"🏨 *{config.display_name}*",
        config.address,
        "",
        _opt(format_date(b.check_in), f"📅 {t['check_in']}: {{}}"),
        _opt(format_date(b.check_out), f"📅 {t['check_out']}: {{}}"),
        "",
        f"🆔 {t['booking_id']}: `{b.booking_id}`",
        "",
        t["contact_soon"],
    )


def guest_sms_text(b: EnrichedBooking, config: PropertyConfig, t: dict[str, str]) -> str:
    return t["guest_sms"].format(property=config.display_name, booking_id=b.booking_id)


def guest_email_html(b: EnrichedBooking, config: PropertyConfig, t: dict[str, str]) -> str:
    e = html.escape
    address = f"<p>{e(config.address)}</p>" if config.address else ""
    check_in = f"<p><strong>{t['check_in']}:</strong> {format_date(b.check_in)}</p>" if b.check_in else ""
    return (
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\"></head><body>"
        "<div class=\"container\">"
        f"<div class=\"header\"><h1>✅ {t['booking_confirmed']}</h1></div>"
        "<div class=\"content\">"
        f"<p>{t['dear']} <strong>{e(b.name)}</strong>,</p>"
        f"<p>{t['thanks']}</p>"
        f"<h3>🏨 {e(config.display_name)}</h3>{address}{check_in}"
        f"<p><strong>🆔 {t['booking_id']}:</strong> {e(b.booking_id)}</p>"
        "</div></div></body></html>"
    )


# ---------- assembly ----------

def _owner_instructions(b: EnrichedBooking, config: PropertyConfig, channels: set[str], t: dict[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    reply_to = config.contact["email"] or None

    if Channel.EMAIL.value in channels and b.owner_email:
        out[Channel.EMAIL.value] = {
            "to": b.owner_email,
            "subject": t["owner_email_subject"].format(name=b.name),
            "htmlBody": owner_email_html(b, t),
            "fromName": config.display_name,
            "replyTo": reply_to,
        }

    whatsapp = config.owner_address(Channel.WHATSAPP)
    if Channel.WHATSAPP.value in channels and re.sub(r"\D", "", whatsapp):
        out[Channel.WHATSAPP.value] = {
            "to": format_whatsapp_number(whatsapp),
            "message": owner_whatsapp_text(b, config, t),
        }

    telegram = config.owner_address(Channel.TELEGRAM)
    if Channel.TELEGRAM.value in channels and telegram:
        out[Channel.TELEGRAM.value] = {
            "chatId": telegram,
            "message": owner_telegram_text(b, t),
            "parseMode": "Markdown",
        }

    discord = config.owner_address(Channel.DISCORD)
    if Channel.DISCORD.value in channels and discord:
        out[Channel.DISCORD.value] = owner_discord_payload(b, config, t, discord)

    sms = config.owner_address(Channel.SMS)
    if Channel.SMS.value in channels and sms:
        out[Channel.SMS.value] = {"to": sms, "message": owner_sms_text(b, t)}

    slack = config.owner_address(Channel.SLACK)
    if Channel.SLACK.value in channels and slack:
        out[Channel.SLACK.value] = owner_slack_payload(b, config, t, slack)

    return out


def _guest_instructions(b: EnrichedBooking, config: PropertyConfig, channels: set[str], t: dict[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    reply_to = config.contact["email"] or None

    if Channel.EMAIL.value in channels and b.email:
        out[Channel.EMAIL.value] = {
            "to": b.email,
            "subject": t["guest_email_subject"].format(property=config.display_name),
            "htmlBody": guest_email_html(b, config, t),
            "fromName": config.display_name,
            "replyTo": reply_to,
        }

    if Channel.TELEGRAM.value in channels and b.telegram_id:
        out[Channel.TELEGRAM.value] = {
            "chatId": b.telegram_id,
            "message": guest_telegram_text(b, config, t),
            "parseMode": "Markdown",
        }

    if Channel.SMS.value in channels and b.phone:
        out[Channel.SMS.value] = {"to": b.phone, "message": guest_sms_text(b, config, t)}

    return out


def owner_channels(config: PropertyConfig, allowed: Iterable[str]) -> set[str]:
    allowed = set(allowed)
    return {c for c in config.enabled_channels if c in allowed}


def guest_channels(config: PropertyConfig, allowed: Iterable[str]) -> set[str]:
    allowed = set(allowed)
    enabled = set(config.enabled_channels)
    return {
        c.value for c in GUEST_CHANNELS
        if f"{GUEST_CHANNEL_PREFIX}{c.value}" in enabled and c.value in allowed
    }


def build(enriched: EnrichedBooking, config: PropertyConfig, allowed_channels: Iterable[str]) -> NotificationInstructionSet:
    allowed = set(allowed_channels)
    t = strings_for(config.language)
    instructions: NotificationInstructionSet = {}

    if config.notify_owner:
        owner = _owner_instructions(enriched, config, owner_channels(config, allowed), t)
        if owner:
            instructions[Recipient.OWNER.value] = owner

    if config.notify_guest:
        guest = _guest_instructions(enriched, config, guest_channels(config, allowed), t)
        if guest:
            instructions[Recipient.GUEST.value] = guest

    return instructions


def channels_in(instructions: NotificationInstructionSet) -> set[str]:
    return {channel for per_role in instructions.values() for channel in per_role}
