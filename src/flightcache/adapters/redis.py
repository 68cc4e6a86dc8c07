"""Redis backing stores."""

from __future__ import annotations

from typing import Any

# Increment and, only when this call created the counter, set its TTL.
# Runs server-side so no client can observe a counter without expiry.
INCR_WITH_EXPIRY_SCRIPT = """
local added = redis.call('INCR', KEYS[1])
if added == 1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
return added
"""


def _decode(data: bytes | str | None) -> str | None:
    """Decode a Redis response regardless of the client's decode_responses."""
    if isinstance(data, bytes):
        return data.decode("utf-8")
    return data


def _pttl(result: int) -> int | None:
    """Map Redis PTTL replies: -2 means missing, -1 means no expiry."""
    if result == -2:
        return None
    return int(result)


class RedisStore:
    """Sync Redis store."""

    def __init__(
        self,
        client: Any,  # redis.Redis
        *,
        prefix: str = "",
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._incr_with_expiry = client.register_script(INCR_WITH_EXPIRY_SCRIPT)

    def _key(self, key: str) -> str:
        """Generate full Redis key."""
        return f"{self._prefix}:{key}" if self._prefix else key

    def get(self, key: str) -> str | None:
        return _decode(self._client.get(self._key(key)))

    def set(self, key: str, value: str, ttl_ms: int) -> None:
        self._client.set(self._key(key), value, px=ttl_ms)

    def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        # SET NX PX is a single command, no separate EXPIRE round trip
        return bool(self._client.set(self._key(key), value, nx=True, px=ttl_ms))

    def delete(self, key: str) -> bool:
        return self._client.delete(self._key(key)) > 0

    def incr(self, key: str, amount: int = 1) -> int:
        return int(self._client.incrby(self._key(key), amount))

    def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        return int(self._incr_with_expiry(keys=[self._key(key)], args=[ttl_ms]))

    def expire(self, key: str, ttl_ms: int) -> bool:
        return bool(self._client.pexpire(self._key(key), ttl_ms))

    def pttl(self, key: str) -> int | None:
        """Remaining TTL in ms, -1 without expiry, None when missing."""
        return _pttl(self._client.pttl(self._key(key)))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()


class AsyncRedisStore:
    """Async Redis store."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "",
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._incr_with_expiry = client.register_script(INCR_WITH_EXPIRY_SCRIPT)

    def _key(self, key: str) -> str:
        """Generate full Redis key."""
        return f"{self._prefix}:{key}" if self._prefix else key

    async def get(self, key: str) -> str | None:
        return _decode(await self._client.get(self._key(key)))

    async def set(self, key: str, value: str, ttl_ms: int) -> None:
        await self._client.set(self._key(key), value, px=ttl_ms)

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        return bool(await self._client.set(self._key(key), value, nx=True, px=ttl_ms))

    async def delete(self, key: str) -> bool:
        return await self._client.delete(self._key(key)) > 0

    async def incr(self, key: str, amount: int = 1) -> int:
        return int(await self._client.incrby(self._key(key), amount))

    async def incr_with_expiry(self, key: str, ttl_ms: int) -> int:
        return int(await self._incr_with_expiry(keys=[self._key(key)], args=[ttl_ms]))

    async def expire(self, key: str, ttl_ms: int) -> bool:
        return bool(await self._client.pexpire(self._key(key), ttl_ms))

    async def pttl(self, key: str) -> int | None:
        """Remaining TTL in ms, -1 without expiry, None when missing."""
        return _pttl(await self._client.pttl(self._key(key)))

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
