"""Base protocols for backing key-value stores.

A store only needs native support for conditional create with TTL and an
atomic increment that applies a TTL when it creates the counter. Everything
else in flightcache is layered on top of these operations.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Sync backing store interface."""

    def get(self, key: str) -> str | None:
        """Get the raw value stored at key."""
        ...

    def set(self, key: str, value: str, ttl_ms: int) -> None:
        """Store a value that expires after ttl_ms."""
        ...

    def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """Atomically create key with a TTL. Returns False if it already exists."""
        ...

    def delete(self, key: str) -> bool:
        """Delete a key. Returns whether it existed."""
        ...

    def incr(self, key: str, amount: int = 1) -> int:
        """Increment a counter without touching its TTL."""
        ...

    def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        """Atomically increment a counter, setting the TTL when it is created."""
        ...

    def expire(self, key: str, ttl_ms: int) -> bool:
        """Reset the TTL of an existing key."""
        ...

    def close(self) -> None:
        """Release connections held by the store."""
        ...


@runtime_checkable
class AsyncKeyValueStore(Protocol):
    """Async backing store interface."""

    async def get(self, key: str) -> str | None:
        """Get the raw value stored at key."""
        ...

    async def set(self, key: str, value: str, ttl_ms: int) -> None:
        """Store a value that expires after ttl_ms."""
        ...

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """Atomically create key with a TTL. Returns False if it already exists."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns whether it existed."""
        ...

    async def incr(self, key: str, amount: int = 1) -> int:
        """Increment a counter without touching its TTL."""
        ...

    async def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        """Atomically increment a counter, setting the TTL when it is created."""
        ...

    async def expire(self, key: str, ttl_ms: int) -> bool:
        """Reset the TTL of an existing key."""
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...
