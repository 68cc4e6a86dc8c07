"""In-memory backing stores with per-key TTL."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable


class _Entries:
    """TTL bookkeeping shared by the sync and async stores.

    Not thread-safe on its own; callers hold their store's lock.
    """

    def __init__(self, clock: Callable[[], float], sweep_every: int) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._sweep_every = sweep_every
        self._writes = 0

    def _deadline(self, ttl_ms: int) -> float:
        return self._clock() + ttl_ms / 1000

    def get(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: str, ttl_ms: int) -> None:
        self._data[key] = (value, self._deadline(ttl_ms))
        self._wrote()

    def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        if self.get(key) is not None:
            return False
        self.set(key, value, ttl_ms)
        return True

    def delete(self, key: str) -> bool:
        existed = self.get(key) is not None
        self._data.pop(key, None)
        return existed

    def incr(self, key: str, amount: int) -> int:
        current = self.get(key)
        count = (int(current) if current is not None else 0) + amount
        expires_at = self._data[key][1] if current is not None else None
        self._data[key] = (str(count), expires_at)
        self._wrote()
        return count

    def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        count = self.incr(key, 1)
        if count == 1:
            self._data[key] = (str(count), self._deadline(ttl_ms))
        return count

    def expire(self, key: str, ttl_ms: int) -> bool:
        value = self.get(key)
        if value is None:
            return False
        self._data[key] = (value, self._deadline(ttl_ms))
        return True

    def pttl(self, key: str) -> int | None:
        if self.get(key) is None:
            return None
        expires_at = self._data[key][1]
        if expires_at is None:
            return -1
        return max(0, int((expires_at - self._clock()) * 1000))

    def clear(self) -> None:
        self._data.clear()

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._data.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._data[key]
        self._writes = 0
        return len(expired)

    def _wrote(self) -> None:
        # Untouched keys are only dropped by a sweep
        self._writes += 1
        if self._writes >= self._sweep_every:
            self.purge_expired()


class MemoryStore:
    """Sync in-process store.

    Every operation runs under one lock, so ``set_if_absent`` and
    ``incr_with_expiry`` are atomic across threads of this process.
    Expired keys are dropped when read and by a sweep every ``sweep_every``
    writes, so keys that are never read again do not accumulate.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 1000,
    ) -> None:
        self._entries = _Entries(clock, sweep_every)
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: str, ttl_ms: int) -> None:
        with self._lock:
            self._entries.set(key, value, ttl_ms)

    def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        with self._lock:
            return self._entries.set_if_absent(key, value, ttl_ms)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.delete(key)

    def incr(self, key: str, amount: int = 1) -> int:
        with self._lock:
            return self._entries.incr(key, amount)

    def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        with self._lock:
            return self._entries.incr_with_expiry(key, ttl_ms)

    def expire(self, key: str, ttl_ms: int) -> bool:
        with self._lock:
            return self._entries.expire(key, ttl_ms)

    def pttl(self, key: str) -> int | None:
        """Remaining TTL in ms, -1 without expiry, None when missing."""
        with self._lock:
            return self._entries.pttl(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            return self._entries.purge_expired()

    def close(self) -> None:
        """Close the store (no-op for memory)."""
        pass


class AsyncMemoryStore:
    """Async in-process store, atomic per operation under an asyncio lock."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 1000,
    ) -> None:
        self._entries = _Entries(clock, sweep_every)
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._entries.get(key)

    async def set(self, key: str, value: str, ttl_ms: int) -> None:
        async with self._lock:
            self._entries.set(key, value, ttl_ms)

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        async with self._lock:
            return self._entries.set_if_absent(key, value, ttl_ms)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.delete(key)

    async def incr(self, key: str, amount: int = 1) -> int:
        async with self._lock:
            return self._entries.incr(key, amount)

    async def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        async with self._lock:
            return self._entries.incr_with_expiry(key, ttl_ms)

    async def expire(self, key: str, ttl_ms: int) -> bool:
        async with self._lock:
            return self._entries.expire(key, ttl_ms)

    async def pttl(self, key: str) -> int | None:
        """Remaining TTL in ms, -1 without expiry, None when missing."""
        async with self._lock:
            return self._entries.pttl(key)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        async with self._lock:
            return self._entries.purge_expired()

    async def close(self) -> None:
        """Close the store (no-op for memory)."""
        pass
