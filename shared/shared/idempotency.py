from typing import Optional

from .kv_store import KeyValueStore

MARKER_TTL_SECONDS = 3600


def dedup_key(slug: str, identifier: Optional[str], date: Optional[str]) -> str:
    return f"dedup:{slug}:{identifier or 'unknown'}:{date or 'nodate'}".lower()


async def is_processed(store: KeyValueStore, key: str) -> bool:
    return await store.get(key) is not None


async def mark_processed(store: KeyValueStore, key: str, ttl_seconds: int = MARKER_TTL_SECONDS):
    await store.put(key, "1", ttl_seconds)
