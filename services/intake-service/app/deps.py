from typing import Optional

import httpx
from fastapi import Request

from shared.kv_store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from shared.redis import create_redis_client

from .channels import build_providers
from .config import Settings
from .directory import PropertyDirectory
from .dispatcher import NotificationDispatcher
from .forwarder import SinkForwarder
from .guards import DedupGuard, RateLimiter
from .pipeline import BookingPipeline
from .quota import QuotaEnforcer


def build_store(settings: Settings) -> KeyValueStore:
    if settings.kv_backend == "memory":
        return InMemoryKeyValueStore()
    return RedisKeyValueStore(create_redis_client(settings.redis_url))


def build_pipeline(
    settings: Settings,
    store: KeyValueStore,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BookingPipeline:
    directory = PropertyDirectory(store)
    quota = QuotaEnforcer(directory)
    dispatcher = NotificationDispatcher(
        providers=build_providers(settings, transport),
        notify_limiter=RateLimiter(store, prefix="notify_rate"),
        quota=quota,
    )
    return BookingPipeline(
        settings=settings,
        directory=directory,
        quota=quota,
        dedup=DedupGuard(store),
        rate_limiter=RateLimiter(store, prefix="rate"),
        forwarder=SinkForwarder(settings.sink_timeout_seconds, transport),
        dispatcher=dispatcher,
    )


def get_pipeline(request: Request) -> BookingPipeline:
    state = request.app.state
    if getattr(state, "pipeline", None) is None:
        settings = state.settings or Settings.from_env()
        if state.store is None:
            state.store = build_store(settings)
        state.settings = settings
        state.pipeline = build_pipeline(settings, state.store, state.transport)
    return state.pipeline
