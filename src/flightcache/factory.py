"""Convenience constructors wiring a store, facade and guard together."""

from __future__ import annotations

from flightcache.adapters.base import AsyncKeyValueStore, KeyValueStore
from flightcache.config import CacheConfig
from flightcache.facade import AsyncStoreFacade, StoreFacade
from flightcache.guard import AsyncStampedeGuard, StampedeGuard
from flightcache.types import Duration


def _default_config(
    expire: Duration,
    null_expire: Duration | None,
    max_wait: Duration | None,
    wait_sleep: Duration,
    lock_time: Duration,
) -> CacheConfig:
    return CacheConfig(
        expire=expire,
        null_expire=null_expire,
        max_wait=max_wait,
        wait_sleep=wait_sleep,
        lock_time=lock_time,
    )


def create_guard(
    store: KeyValueStore,
    *,
    expire: Duration = "30s",
    null_expire: Duration | None = None,
    max_wait: Duration | None = "5s",
    wait_sleep: Duration = "50ms",
    lock_time: Duration = "10m",
    prefix: str = "flightcache",
) -> StampedeGuard:
    """Create a sync guard whose default config is built from the given durations.

    Args:
        store: Backing store
        expire: Default TTL for cached values
        null_expire: Default TTL for the negative marker (falls back to expire)
        max_wait: Default wait bound; <= 0 fails fast, None waits forever
        wait_sleep: Poll interval while waiting for another holder
        lock_time: Lease on the fill lock
        prefix: Prefix for keys generated by the cached decorator

    Returns:
        StampedeGuard with fetch, fetch_value, fetch_list, cached, invalidate
    """
    return StampedeGuard(
        StoreFacade(store),
        default_config=_default_config(
            expire, null_expire, max_wait, wait_sleep, lock_time
        ),
        prefix=prefix,
    )


def create_async_guard(
    store: AsyncKeyValueStore,
    *,
    expire: Duration = "30s",
    null_expire: Duration | None = None,
    max_wait: Duration | None = "5s",
    wait_sleep: Duration = "50ms",
    lock_time: Duration = "10m",
    prefix: str = "flightcache",
) -> AsyncStampedeGuard:
    """Create an async guard; arguments as for create_guard."""
    return AsyncStampedeGuard(
        AsyncStoreFacade(store),
        default_config=_default_config(
            expire, null_expire, max_wait, wait_sleep, lock_time
        ),
        prefix=prefix,
    )
