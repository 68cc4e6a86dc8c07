"""Backing store adapters for flightcache."""

from flightcache.adapters.base import AsyncKeyValueStore, KeyValueStore
from flightcache.adapters.memory import AsyncMemoryStore, MemoryStore
from flightcache.adapters.redis import AsyncRedisStore, RedisStore

__all__ = [
    "AsyncKeyValueStore",
    "AsyncMemoryStore",
    "AsyncRedisStore",
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
]
