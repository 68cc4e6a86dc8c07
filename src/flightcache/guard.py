"""Single-flight read-through cache over a shared store.

A fetch serves the key from the store when present. On a miss, callers race
for a lease lock created with the store's atomic conditional write; the winner
computes and fills the key, the others poll until the value appears, their
wait budget runs out, or (in fail-fast mode) give up immediately.

The lock is a lease without holder identity. If ``compute`` outlives
``lock_time`` another caller can take the lock and fill the key a second time,
so this is not a mutex for work that must never run twice.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

import structlog

from flightcache import codec
from flightcache.config import CacheConfig
from flightcache.errors import (
    LockDeniedError,
    StoreError,
    WaitTimeoutError,
    store_errors,
)
from flightcache.facade import AsyncStoreFacade, StoreFacade

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")

LOCK_PREFIX = "@$%#lock##"


def lock_key(key: str) -> str:
    """Derive the lock key guarding a value key."""
    return f"{LOCK_PREFIX}{key}"


def _usable(raw: str | None, config: CacheConfig) -> bool:
    """Whether a stored value ends the fetch without computing."""
    if raw is None:
        return False
    return not (config.require_non_null and raw == codec.NEGATIVE_MARKER)


def _elapsed_ms(begin: float) -> int:
    return int((time.monotonic() - begin) * 1000)


def _make_cache_key(prefix: str, fn: Callable[..., Any], args: Any, kwargs: Any) -> str:
    """Generate a cache key from function name and arguments."""
    args_hash = hashlib.sha256(
        json.dumps([args, kwargs], sort_keys=True, default=str).encode()
    ).hexdigest()[:16]
    return f"{prefix}:{fn.__qualname__}:{args_hash}"


def _encode(key: str, value: object, config: CacheConfig) -> tuple[str | None, int]:
    """Serialize a computed value, picking the TTL for its kind."""
    if codec.is_empty(value):
        return None, config.null_expire_ms
    with store_errors("encode", key):
        return codec.dumps(value), config.expire_ms


def _decode_value(key: str, raw: str | None, type_: Any) -> Any:
    if raw is None:
        return None
    with store_errors("decode", key):
        return codec.loads(raw, type_)


def _decode_list(key: str, raw: str | None, item_type: Any) -> list[Any]:
    if raw is None:
        return []
    with store_errors("decode", key):
        return codec.loads_list(raw, item_type)


class _GuardBase:
    def __init__(
        self,
        *,
        default_config: CacheConfig | None,
        prefix: str,
    ) -> None:
        self._default_config = default_config
        self._prefix = prefix

    @property
    def default_config(self) -> CacheConfig | None:
        return self._default_config

    def _resolve(self, config: CacheConfig | None) -> CacheConfig:
        if config is not None:
            return config
        if self._default_config is None:
            raise ValueError("No CacheConfig given and the guard has no default")
        return self._default_config

    def _check_wait(self, key: str, begin: float, config: CacheConfig) -> None:
        max_wait = config.max_wait_ms
        waited = _elapsed_ms(begin)
        if max_wait is not None and max_wait > 0 and waited > max_wait:
            logger.warning("cache wait timed out", key=key, waited_ms=waited)
            raise WaitTimeoutError(
                f"Timed out after {waited}ms waiting for {key!r} to be filled",
                key=key,
                waited_ms=waited,
            )

    def _deny(self, key: str) -> LockDeniedError:
        logger.info("cache lock denied", key=key)
        return LockDeniedError(f"Fill lock for {key!r} is held", key=key)


class StampedeGuard(_GuardBase):
    """Sync single-flight read-through cache."""

    def __init__(
        self,
        facade: StoreFacade,
        *,
        default_config: CacheConfig | None = None,
        prefix: str = "flightcache",
    ) -> None:
        super().__init__(default_config=default_config, prefix=prefix)
        self._facade = facade

    @property
    def facade(self) -> StoreFacade:
        return self._facade

    def fetch(
        self,
        key: str,
        compute: Callable[[], Any],
        config: CacheConfig | None = None,
    ) -> str | None:
        """Return the serialized value for key, computing it at most once fleet-wide.

        Raises:
            WaitTimeoutError: Another caller held the lock longer than max_wait.
            LockDeniedError: Fail-fast mode found the lock held.
            StoreError: The backing store failed.
        """
        config = self._resolve(config)
        raw = self._facade.get(key)
        if _usable(raw, config):
            logger.debug("cache hit", key=key, negative=raw == codec.NEGATIVE_MARKER)
            return codec.unwrap(raw)

        lock = lock_key(key)
        begin = time.monotonic()
        while True:
            self._check_wait(key, begin, config)
            if self._facade.set_if_absent(lock, config.lock_time_ms):
                logger.debug("cache lock acquired", key=key)
                return self._fill(key, lock, compute, config)
            if config.fail_fast:
                raise self._deny(key)
            raw = self._facade.get(key)
            if _usable(raw, config):
                logger.debug("cache filled by other holder", key=key)
                return codec.unwrap(raw)
            logger.debug("waiting for cache fill", key=key)
            time.sleep(config.wait_sleep_ms / 1000)

    def fetch_value(
        self,
        key: str,
        compute: Callable[[], Any],
        config: CacheConfig | None = None,
        type_: type[T] | Any = None,
    ) -> T | None:
        """Fetch and decode, validating into type_ when given."""
        raw = self.fetch(key, compute, config)
        return cast("T | None", _decode_value(key, raw, type_))

    def fetch_list(
        self,
        key: str,
        compute: Callable[[], Any],
        config: CacheConfig | None = None,
        item_type: type[T] | Any = None,
    ) -> list[T]:
        """Fetch and decode a list; nothing cached maps to an empty list."""
        return _decode_list(key, self.fetch(key, compute, config), item_type)

    def invalidate(self, key: str) -> bool:
        """Drop the cached value so the next fetch recomputes it."""
        return self._facade.delete(key)

    def cached(
        self,
        config: CacheConfig | None = None,
        *,
        key: Callable[..., str] | None = None,
        type_: Any = None,
    ) -> Callable[[Callable[P, R]], Callable[P, R | None]]:
        """Decorator that serves a function's result through the guard."""

        def decorator(fn: Callable[P, R]) -> Callable[P, R | None]:
            @wraps(fn)
            def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
                cache_key = (
                    key(*args, **kwargs)
                    if key is not None
                    else _make_cache_key(self._prefix, fn, args, kwargs)
                )
                return self.fetch_value(
                    cache_key, lambda: fn(*args, **kwargs), config, type_
                )

            return wrapper

        return decorator

    def _fill(
        self,
        key: str,
        lock: str,
        compute: Callable[[], Any],
        config: CacheConfig,
    ) -> str | None:
        try:
            raw = self._facade.get(key)
            if _usable(raw, config):
                logger.debug("cache filled before lock", key=key)
                return codec.unwrap(raw)
            value = compute()
            try:
                payload, ttl_ms = _encode(key, value, config)
                self._facade.set(key, payload, ttl_ms)
            except StoreError:
                logger.exception("cache fill write failed", key=key)
                raise
            logger.debug("cache filled", key=key, negative=payload is None)
            return payload
        finally:
            self._release(key, lock)

    def _release(self, key: str, lock: str) -> None:
        try:
            self._facade.delete(lock)
        except StoreError:
            # The lease TTL reclaims the lock
            logger.warning("cache lock release failed", key=key, exc_info=True)


class AsyncStampedeGuard(_GuardBase):
    """Async single-flight read-through cache."""

    def __init__(
        self,
        facade: AsyncStoreFacade,
        *,
        default_config: CacheConfig | None = None,
        prefix: str = "flightcache",
    ) -> None:
        super().__init__(default_config=default_config, prefix=prefix)
        self._facade = facade

    @property
    def facade(self) -> AsyncStoreFacade:
        return self._facade

    async def fetch(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        config: CacheConfig | None = None,
    ) -> str | None:
        """Return the serialized value for key, computing it at most once fleet-wide.

        Cancelling a waiting caller raises CancelledError straight away;
        cancelling the holder still releases the lock.
        """
        config = self._resolve(config)
        raw = await self._facade.get(key)
        if _usable(raw, config):
            logger.debug("cache hit", key=key, negative=raw == codec.NEGATIVE_MARKER)
            return codec.unwrap(raw)

        lock = lock_key(key)
        begin = time.monotonic()
        while True:
            self._check_wait(key, begin, config)
            if await self._facade.set_if_absent(lock, config.lock_time_ms):
                logger.debug("cache lock acquired", key=key)
                return await self._fill(key, lock, compute, config)
            if config.fail_fast:
                raise self._deny(key)
            raw = await self._facade.get(key)
            if _usable(raw, config):
                logger.debug("cache filled by other holder", key=key)
                return codec.unwrap(raw)
            logger.debug("waiting for cache fill", key=key)
            await asyncio.sleep(config.wait_sleep_ms / 1000)

    async def fetch_value(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        config: CacheConfig | None = None,
        type_: type[T] | Any = None,
    ) -> T | None:
        """Fetch and decode, validating into type_ when given."""
        raw = await self.fetch(key, compute, config)
        return cast("T | None", _decode_value(key, raw, type_))

    async def fetch_list(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        config: CacheConfig | None = None,
        item_type: type[T] | Any = None,
    ) -> list[T]:
        """Fetch and decode a list; nothing cached maps to an empty list."""
        return _decode_list(key, await self.fetch(key, compute, config), item_type)

    async def invalidate(self, key: str) -> bool:
        """Drop the cached value so the next fetch recomputes it."""
        return await self._facade.delete(key)

    def cached(
        self,
        config: CacheConfig | None = None,
        *,
        key: Callable[..., str] | None = None,
        type_: Any = None,
    ) -> Callable[
        [Callable[P, Awaitable[R]]], Callable[P, Awaitable[R | None]]
    ]:
        """Decorator that serves a coroutine function's result through the guard."""

        def decorator(
            fn: Callable[P, Awaitable[R]],
        ) -> Callable[P, Awaitable[R | None]]:
            @wraps(fn)
            async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
                cache_key = (
                    key(*args, **kwargs)
                    if key is not None
                    else _make_cache_key(self._prefix, fn, args, kwargs)
                )
                return await self.fetch_value(
                    cache_key, lambda: fn(*args, **kwargs), config, type_
                )

            return wrapper

        return decorator

    async def _fill(
        self,
        key: str,
        lock: str,
        compute: Callable[[], Awaitable[Any]],
        config: CacheConfig,
    ) -> str | None:
        try:
            raw = await self._facade.get(key)
            if _usable(raw, config):
                logger.debug("cache filled before lock", key=key)
                return codec.unwrap(raw)
            value = await compute()
            try:
                payload, ttl_ms = _encode(key, value, config)
                await self._facade.set(key, payload, ttl_ms)
            except StoreError:
                logger.exception("cache fill write failed", key=key)
                raise
            logger.debug("cache filled", key=key, negative=payload is None)
            return payload
        finally:
            await self._release(key, lock)

    async def _release(self, key: str, lock: str) -> None:
        try:
            await self._facade.delete(lock)
        except StoreError:
            # The lease TTL reclaims the lock
            logger.warning("cache lock release failed", key=key, exc_info=True)
