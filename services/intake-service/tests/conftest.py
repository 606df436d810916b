import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from shared.kv_store import InMemoryKeyValueStore, put_json

from app.config import Settings
from app.main import create_app

SINK_URL = "https://sink.test/exec"
MAIL_URL = "https://mail.test/send"
RELAY_URL = "https://relay.test/notify"
SECRET = "test-secret"


class FakeUpstreams:
    """Records every outbound call and answers per host."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.sink_status = 200
        self.sink_body: object = {"success": True}
        self.fail_hosts: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.fail_hosts:
            return httpx.Response(503, text="down")
        if request.url.path == "/exec":
            if isinstance(self.sink_body, str):
                return httpx.Response(self.sink_status, text=self.sink_body)
            return httpx.Response(self.sink_status, json=self.sink_body)
        return httpx.Response(200, json={"ok": True})

    def to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def json_to(self, host: str) -> list[dict]:
        return [json.loads(r.content) for r in self.to(host)]


def make_config(**overrides) -> dict:
    config = {
        "slug": "lakeview",
        "name": "Lakeview Cottages",
        "status": "active",
        "plan_tier": "trial",
        "updatedAt": "2026-01-05T10:00:00Z",
        "contact": {"phone": "+91 98765 43210", "email": "stay@lakeview.test"},
        "location": {"address": "12 Lake Road"},
        "notifications": {
            "enabled": True,
            "notifyOwner": True,
            "notifyCustomer": False,
            "channels": ["whatsapp", "email"],
            "ownerEmail": "owner@lakeview.test",
            "ownerWhatsapp": "9876543210",
            "language": "en",
            "maxPerHour": 10,
        },
        "booking": {"mode": "sheet"},
    }
    config.update(overrides)
    return config


@pytest.fixture
def settings():
    return Settings(
        booking_webhook_url=SINK_URL,
        hmac_secret=SECRET,
        kv_backend="memory",
        notification_webhook_url=RELAY_URL,
        email_api_url=MAIL_URL,
        email_from="bookings@platform.test",
    )


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def upstreams():
    return FakeUpstreams()


@pytest.fixture
def seed(store):
    def _seed(key: str, value):
        asyncio.run(put_json(store, key, value))

    return _seed


@pytest.fixture
def client(settings, store, upstreams):
    app = create_app(settings=settings, store=store, transport=httpx.MockTransport(upstreams.handler))
    with TestClient(app) as c:
        yield c
