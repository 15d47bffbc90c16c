"""
In-memory task cache with TTL.

Implements TaskCacheProtocol for a single process. Expiry uses the
monotonic clock. Expired keys read back as missing, and every write sweeps
the keys whose TTL has passed, so ownership keys of finished tasks do not
accumulate.
"""

import asyncio
import heapq
import time


class InMemoryTaskCache:
    """Process-local key-value store with per-key TTL."""

    def __init__(self):
        self._data: dict[str, tuple[str, float]] = {}
        # (expires_at, key); stale entries are skipped when their key was rewritten
        self._expiry: list[tuple[float, str]] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._data)

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._get(key)

    async def set(self, key: str, value: str, ttl: float) -> None:
        async with self._lock:
            self._evict_expired()
            self._put(key, value, ttl)

    async def set_if_absent(self, key: str, value: str, ttl: float) -> bool:
        async with self._lock:
            self._evict_expired()
            if self._get(key) is not None:
                return False
            self._put(key, value, ttl)
            return True

    def _put(self, key: str, value: str, ttl: float) -> None:
        expires_at = time.monotonic() + ttl
        self._data[key] = (value, expires_at)
        heapq.heappush(self._expiry, (expires_at, key))

    def _get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._data[key]
            return None
        return value

    def _evict_expired(self) -> None:
        now = time.monotonic()
        while self._expiry and self._expiry[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiry)
            entry = self._data.get(key)
            if entry is not None and entry[1] == expires_at:
                del self._data[key]
