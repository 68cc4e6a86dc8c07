"""Defensive access layer over a backing store.

Every fault raised by the store, or by decoding what it returned, surfaces as
``StoreError`` chained to the original exception. Nothing is retried here.
"""

from __future__ import annotations

import time
from typing import Any, TypeVar

from flightcache import codec
from flightcache.adapters.base import AsyncKeyValueStore, KeyValueStore
from flightcache.duration import parse_duration
from flightcache.errors import store_errors
from flightcache.types import Duration

T = TypeVar("T")


def _lock_stamp() -> str:
    return str(int(time.time() * 1000))


def _blank(raw: str | None) -> bool:
    return raw is None or not raw.strip()


class StoreFacade:
    """Sync access facade."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def get(self, key: str) -> str | None:
        """Raw scalar read."""
        with store_errors("get", key):
            return self._store.get(key)

    def get_typed(self, key: str, type_: type[T] | Any = None) -> T | None:
        """Read and decode; None when the raw value is missing or blank."""
        raw = self.get(key)
        if _blank(raw):
            return None
        with store_errors("decode", key):
            return codec.loads(raw, type_)  # type: ignore[arg-type]

    def get_list(self, key: str, item_type: type[T] | Any = None) -> list[T]:
        """Read and decode a list; empty when the key is missing."""
        raw = self.get(key)
        if raw is None:
            return []
        with store_errors("decode", key):
            return codec.loads_list(raw, item_type)

    def get_cached(self, key: str, type_: type[T] | Any = None) -> T | None:
        """Like get_typed, but the negative marker also reads as None."""
        raw = codec.unwrap(self.get(key))
        if _blank(raw):
            return None
        with store_errors("decode", key):
            return codec.loads(raw, type_)  # type: ignore[arg-type]

    def get_cached_list(self, key: str, item_type: type[T] | Any = None) -> list[T]:
        """Like get_list, but the negative marker also reads as empty."""
        raw = codec.unwrap(self.get(key))
        if raw is None:
            return []
        with store_errors("decode", key):
            return codec.loads_list(raw, item_type)

    def set(self, key: str, value: str | None, ttl: Duration) -> None:
        """Write a value with a TTL; None stores the negative marker."""
        ttl_ms = parse_duration(ttl)
        with store_errors("set", key):
            self._store.set(key, codec.NEGATIVE_MARKER if value is None else value, ttl_ms)

    def set_if_absent(self, key: str, ttl: Duration, value: str | None = None) -> bool:
        """Atomically create key with a TTL; returns whether it was created."""
        ttl_ms = parse_duration(ttl)
        with store_errors("set_if_absent", key):
            stamp = value if value is not None else _lock_stamp()
            return self._store.set_if_absent(key, stamp, ttl_ms)

    def delete(self, key: str) -> bool:
        with store_errors("delete", key):
            return self._store.delete(key)

    def increment(self, key: str, amount: int = 1) -> int:
        """Increment a counter, leaving any TTL untouched."""
        with store_errors("increment", key):
            return self._store.incr(key, amount)

    def increment_with_expiry(self, key: str, ttl: Duration) -> int:
        """Increment a counter; the increment that creates it also sets the TTL.

        Both effects happen in one store-side operation, so concurrent callers
        on a fresh key can neither leave it without expiry nor lose counts.
        """
        ttl_ms = parse_duration(ttl)
        with store_errors("increment_with_expiry", key):
            return self._store.incr_with_expiry(key, ttl_ms)

    def expire(self, key: str, ttl: Duration) -> bool:
        """Refresh the TTL of an existing key."""
        ttl_ms = parse_duration(ttl)
        with store_errors("expire", key):
            return self._store.expire(key, ttl_ms)

    def close(self) -> None:
        with store_errors("close", "*"):
            self._store.close()


class AsyncStoreFacade:
    """Async access facade."""

    def __init__(self, store: AsyncKeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> AsyncKeyValueStore:
        return self._store

    async def get(self, key: str) -> str | None:
        """Raw scalar read."""
        with store_errors("get", key):
            return await self._store.get(key)

    async def get_typed(self, key: str, type_: type[T] | Any = None) -> T | None:
        """Read and decode; None when the raw value is missing or blank."""
        raw = await self.get(key)
        if _blank(raw):
            return None
        with store_errors("decode", key):
            return codec.loads(raw, type_)  # type: ignore[arg-type]

    async def get_list(self, key: str, item_type: type[T] | Any = None) -> list[T]:
        """Read and decode a list; empty when the key is missing."""
        raw = await self.get(key)
        if raw is None:
            return []
        with store_errors("decode", key):
            return codec.loads_list(raw, item_type)

    async def get_cached(self, key: str, type_: type[T] | Any = None) -> T | None:
        """Like get_typed, but the negative marker also reads as None."""
        raw = codec.unwrap(await self.get(key))
        if _blank(raw):
            return None
        with store_errors("decode", key):
            return codec.loads(raw, type_)  # type: ignore[arg-type]

    async def get_cached_list(
        self, key: str, item_type: type[T] | Any = None
    ) -> list[T]:
        """Like get_list, but the negative marker also reads as empty."""
        raw = codec.unwrap(await self.get(key))
        if raw is None:
            return []
        with store_errors("decode", key):
            return codec.loads_list(raw, item_type)

    async def set(self, key: str, value: str | None, ttl: Duration) -> None:
        """Write a value with a TTL; None stores the negative marker."""
        ttl_ms = parse_duration(ttl)
        with store_errors("set", key):
            await self._store.set(
                key, codec.NEGATIVE_MARKER if value is None else value, ttl_ms
            )

    async def set_if_absent(
        self, key: str, ttl: Duration, value: str | None = None
    ) -> bool:
        """Atomically create key with a TTL; returns whether it was created."""
        ttl_ms = parse_duration(ttl)
        with store_errors("set_if_absent", key):
            stamp = value if value is not None else _lock_stamp()
            return await self._store.set_if_absent(key, stamp, ttl_ms)

    async def delete(self, key: str) -> bool:
        with store_errors("delete", key):
            return await self._store.delete(key)

    async def increment(self, key: str, amount: int = 1) -> int:
        """Increment a counter, leaving any TTL untouched."""
        with store_errors("increment", key):
            return await self._store.incr(key, amount)

    async def increment_with_expiry(self, key: str, ttl: Duration) -> int:
        """Increment a counter; the increment that creates it also sets the TTL."""
        ttl_ms = parse_duration(ttl)
        with store_errors("increment_with_expiry", key):
            return await self._store.incr_with_expiry(key, ttl_ms)

    async def expire(self, key: str, ttl: Duration) -> bool:
        """Refresh the TTL of an existing key."""
        ttl_ms = parse_duration(ttl)
        with store_errors("expire", key):
            return await self._store.expire(key, ttl_ms)

    async def close(self) -> None:
        with store_errors("close", "*"):
            await self._store.close()
