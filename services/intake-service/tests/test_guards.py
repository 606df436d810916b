import asyncio

from shared.kv_store import InMemoryKeyValueStore

from app.guards import DedupGuard, RateLimiter, booking_fingerprint
from app.log import mask_dedup_key
from app.schemas import BookingRequest


class Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class BrokenStore:
    async def get(self, key):
        raise ConnectionError("store down")

    async def put(self, key, value, ttl_seconds=None):
        raise ConnectionError("store down")


def test_fingerprint_is_lowercased_and_prefers_email():
    req = BookingRequest.model_validate(
        {"slug": "LakeView", "email": "Asha@Example.com", "phone": "123", "checkIn": "2026-05-01"}
    )
    assert booking_fingerprint(req) == "dedup:lakeview:asha@example.com:2026-05-01"


def test_fingerprint_fallbacks():
    req = BookingRequest.model_validate({"slug": "lakeview"})
    assert booking_fingerprint(req) == "dedup:lakeview:unknown:nodate"


def test_dedup_marker_blocks_until_expiry():
    clock = Clock()
    guard = DedupGuard(InMemoryKeyValueStore(clock=clock))

    async def scenario():
        key = "dedup:lakeview:a@b.co:2026-05-01"
        assert not await guard.is_duplicate(key)
        await guard.reserve(key)
        assert await guard.is_duplicate(key)
        clock.now += 3601
        assert not await guard.is_duplicate(key)

    asyncio.run(scenario())


def test_rate_limiter_counts_up_to_ceiling_then_window_resets():
    clock = Clock()
    limiter = RateLimiter(InMemoryKeyValueStore(clock=clock))

    async def scenario():
        for _ in range(3):
            assert not await limiter.is_limited("lakeview", 3)
            await limiter.increment("lakeview")
        assert await limiter.is_limited("lakeview", 3)
        assert not await limiter.is_limited("other", 3)
        clock.now += 3601
        assert not await limiter.is_limited("lakeview", 3)

    asyncio.run(scenario())


def test_store_failures_fail_open():
    guard = DedupGuard(BrokenStore())
    limiter = RateLimiter(BrokenStore())

    async def scenario():
        assert not await guard.is_duplicate("k")
        await guard.reserve("k")
        assert not await limiter.is_limited("lakeview", 1)
        await limiter.increment("lakeview")

    asyncio.run(scenario())


def test_dedup_logs_mask_the_guest_identifier(capsys):
    guard = DedupGuard(InMemoryKeyValueStore())
    key = "dedup:lakeview:asha.guest@example.com:2026-05-01"

    asyncio.run(guard.reserve(key))

    out = capsys.readouterr().out
    assert "dedup:lakeview:" in out
    assert "asha.guest@example.com" not in out


def test_mask_dedup_key():
    assert mask_dedup_key("dedup:lakeview:asha@example.com:2026-05-01") == "dedup:lakeview:a**a@example.com:2026-05-01"
    assert mask_dedup_key("dedup:lakeview:+911234567890:nodate") == "dedup:lakeview:*********7890:nodate"
    assert mask_dedup_key("dedup:lakeview:unknown:nodate") == "dedup:lakeview:unknown:nodate"
