"""
Shared key-value store used for cross-request coordination.

Only plain get/put with an optional expiry is exposed: no compare-and-swap,
no transactions. Anything built on top (dedup markers, rate counters,
quota counters) is read-then-write and tolerates races.
"""
import json
import time
from threading import RLock
from typing import Any, Callable, Dict, Optional, Protocol, Tuple


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None: ...


class RedisKeyValueStore:
    def __init__(self, client):
        self._client = client

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds:
            await self._client.set(key, value, ex=ttl_seconds)
        else:
            await self._client.set(key, value)

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryKeyValueStore:
    """Thread-safe in-memory store with lazy expiry, for local runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._lock = RLock()
        self._clock = clock
        self._items: Dict[str, Tuple[str, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._items.get(key)
            if not item:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= self._clock():
                del self._items[key]
                return None
            return value

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._items[key] = (value, expires_at)

    async def close(self) -> None:
        return None


async def get_json(store: KeyValueStore, key: str) -> Any:
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


async def put_json(store: KeyValueStore, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
    await store.put(key, json.dumps(value, separators=(",", ":"), ensure_ascii=False), ttl_seconds)
