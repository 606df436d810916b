"""
Channel providers. Each one takes a rendered instruction and delivers it
over its own transport; the dispatcher only sees success or an exception.
"""
from typing import Any, Optional, Protocol

import httpx

from shared.events import build_event

from .config import Settings
from .models import Channel


class ChannelError(Exception):
    pass


class ChannelProvider(Protocol):
    async def send(self, slug: str, role: str, instruction: dict[str, Any]) -> None: ...


class _HttpProvider:
    def __init__(self, timeout_seconds: float, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def _post(self, url: str, payload: dict[str, Any], headers: Optional[dict[str, str]] = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise ChannelError(f"timeout calling {self.__class__.__name__}") from e
        except httpx.HTTPError as e:
            raise ChannelError(f"{self.__class__.__name__} unreachable: {e}") from e

        if not resp.is_success:
            raise ChannelError(f"{self.__class__.__name__} returned {resp.status_code}: {resp.text[:200]}")
        return resp


class EmailProvider(_HttpProvider):
    """Transactional email over a MailChannels-compatible relay."""

    def __init__(self, api_url: str, from_email: Optional[str], from_name: str, timeout_seconds: float, transport=None):
        super().__init__(timeout_seconds, transport)
        self.api_url = api_url
        self.from_email = from_email
        self.from_name = from_name

    async def send(self, slug: str, role: str, instruction: dict[str, Any]) -> None:
        if not self.from_email:
            raise ChannelError("EMAIL_FROM not set; email skipped")
        to = instruction.get("to")
        if not to:
            raise ChannelError("email instruction missing recipient")

        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email, "name": instruction.get("fromName") or self.from_name},
            "subject": instruction.get("subject") or "New booking enquiry",
            "content": [{"type": "text/html", "value": instruction.get("htmlBody") or ""}],
        }
        if instruction.get("replyTo"):
            payload["reply_to"] = {"email": instruction["replyTo"]}
        await self._post(self.api_url, payload)


class RelayProvider(_HttpProvider):
    """Channels without a direct integration (WhatsApp, SMS) go to the notification relay as events."""

    def __init__(self, channel: Channel, webhook_url: Optional[str], timeout_seconds: float, transport=None):
        super().__init__(timeout_seconds, transport)
        self.channel = channel
        self.webhook_url = webhook_url

    async def send(self, slug: str, role: str, instruction: dict[str, Any]) -> None:
        if not self.webhook_url:
            raise ChannelError(f"{self.channel.value} requested but NOTIFICATION_WEBHOOK_URL not configured")
        if not instruction.get("to"):
            raise ChannelError(f"{self.channel.value} instruction missing recipient")

        event = build_event(
            "booking.notification",
            slug,
            {"channel": self.channel.value, "recipient": role, "instruction": instruction},
        )
        await self._post(self.webhook_url, event)


class TelegramProvider(_HttpProvider):
    def __init__(self, bot_token: Optional[str], api_url: str, timeout_seconds: float, transport=None):
        super().__init__(timeout_seconds, transport)
        self.bot_token = bot_token
        self.api_url = api_url.rstrip("/")

    async def send(self, slug: str, role: str, instruction: dict[str, Any]) -> None:
        if not self.bot_token:
            raise ChannelError("TELEGRAM_BOT_TOKEN not set; telegram skipped")
        payload = {
            "chat_id": instruction.get("chatId"),
            "text": instruction.get("message") or "",
            "parse_mode": instruction.get("parseMode") or "Markdown",
        }
        resp = await self._post(f"{self.api_url}/bot{self.bot_token}/sendMessage", payload)
        try:
            ok = resp.json().get("ok", True)
        except ValueError:
            ok = True
        if ok is False:
            raise ChannelError("telegram rejected message")


class IncomingWebhookProvider(_HttpProvider):
    """Discord/Slack style: the tenant's address is itself a webhook URL."""

    async def send(self, slug: str, role: str, instruction: dict[str, Any]) -> None:
        payload = dict(instruction)
        url = payload.pop("webhookUrl", None)
        if not url:
            raise ChannelError("webhook instruction missing url")
        await self._post(url, payload)


def build_providers(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> dict[str, ChannelProvider]:
    timeout = settings.channel_timeout_seconds
    return {
        Channel.EMAIL.value: EmailProvider(
            settings.email_api_url, settings.email_from, settings.email_from_name, timeout, transport
        ),
        Channel.WHATSAPP.value: RelayProvider(Channel.WHATSAPP, settings.notification_webhook_url, timeout, transport),
        Channel.SMS.value: RelayProvider(Channel.SMS, settings.notification_webhook_url, timeout, transport),
        Channel.TELEGRAM.value: TelegramProvider(settings.telegram_bot_token, settings.telegram_api_url, timeout, transport),
        Channel.DISCORD.value: IncomingWebhookProvider(timeout, transport),
        Channel.SLACK.value: IncomingWebhookProvider(timeout, transport),
    }
