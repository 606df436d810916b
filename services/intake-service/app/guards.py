"""
Dedup and rate gates over the shared key-value store.

Both are read-then-write with no compare-and-swap, so two identical
requests racing within a few milliseconds can both pass. Store errors
fail open: a storage outage must not become a booking outage.
"""
from shared.idempotency import dedup_key, is_processed, mark_processed
from shared.kv_store import KeyValueStore

from .log import log, mask_dedup_key
from .schemas import BookingRequest

WINDOW_SECONDS = 3600


def booking_fingerprint(request: BookingRequest) -> str:
    return dedup_key(request.slug or "", request.email or request.phone, request.check_in)


class DedupGuard:
    def __init__(self, store: KeyValueStore, ttl_seconds: int = WINDOW_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def is_duplicate(self, key: str) -> bool:
        try:
            return await is_processed(self.store, key)
        except Exception as e:
            log(f"dedup check failed for {mask_dedup_key(key)}; allowing: {e}")
            return False

    async def reserve(self, key: str) -> None:
        try:
            await mark_processed(self.store, key, self.ttl_seconds)
            log(f"dedup marked as processed: {mask_dedup_key(key)}")
        except Exception as e:
            log(f"dedup mark failed for {mask_dedup_key(key)}: {e}")


class RateLimiter:
    """Fixed one-hour bucket per key; expiry of the key resets the window."""

    def __init__(self, store: KeyValueStore, prefix: str = "rate", ttl_seconds: int = WINDOW_SECONDS):
        self.store = store
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds

    def _key(self, slug: str) -> str:
        return f"{self.prefix}:{slug}"

    async def _count(self, slug: str) -> int:
        raw = await self.store.get(self._key(slug))
        try:
            return int(raw or "0")
        except (TypeError, ValueError):
            return 0

    async def is_limited(self, slug: str, ceiling: int) -> bool:
        try:
            current = await self._count(slug)
        except Exception as e:
            log(f"{self.prefix} check failed for {slug}; allowing: {e}")
            return False
        log(f"{self.prefix} {slug}: {current}/{ceiling}")
        return current >= ceiling

    async def increment(self, slug: str) -> None:
        try:
            count = await self._count(slug) + 1
            await self.store.put(self._key(slug), str(count), self.ttl_seconds)
            log(f"{self.prefix} incremented {slug}: {count}")
        except Exception as e:
            log(f"{self.prefix} increment failed for {slug}: {e}")
