"""flightcache - single-flight read-through caching over a shared store."""

from flightcache.adapters import (
    AsyncKeyValueStore,
    AsyncMemoryStore,
    AsyncRedisStore,
    KeyValueStore,
    MemoryStore,
    RedisStore,
)
from flightcache.codec import NEGATIVE_MARKER
from flightcache.config import CacheConfig
from flightcache.duration import parse_duration
from flightcache.errors import (
    FlightCacheError,
    LockDeniedError,
    StoreError,
    WaitTimeoutError,
)
from flightcache.facade import AsyncStoreFacade, StoreFacade
from flightcache.factory import create_async_guard, create_guard
from flightcache.guard import (
    LOCK_PREFIX,
    AsyncStampedeGuard,
    StampedeGuard,
    lock_key,
)
from flightcache.types import Duration

__version__ = "0.1.0"

__all__ = [
    "LOCK_PREFIX",
    "NEGATIVE_MARKER",
    "AsyncKeyValueStore",
    "AsyncMemoryStore",
    "AsyncRedisStore",
    "AsyncStampedeGuard",
    "AsyncStoreFacade",
    "CacheConfig",
    "Duration",
    "FlightCacheError",
    "KeyValueStore",
    "LockDeniedError",
    "MemoryStore",
    "RedisStore",
    "StampedeGuard",
    "StoreError",
    "StoreFacade",
    "WaitTimeoutError",
    "create_async_guard",
    "create_guard",
    "lock_key",
    "parse_duration",
]
