"""Per-call configuration for guarded fetches."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from flightcache.duration import parse_duration
from flightcache.types import Duration


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Configuration for a single guarded fetch.

    Args:
        expire: TTL for real values.
        null_expire: TTL for the negative marker. ``None`` or zero falls back
            to ``expire``.
        max_wait: How long a caller waits for another holder to fill the key.
            ``<= 0`` fails fast with ``LockDeniedError``; ``None`` waits
            without bound.
        wait_sleep: Poll interval while waiting.
        lock_time: TTL on the lock itself, reclaiming it if the holder dies.
        require_non_null: Treat a cached negative marker as a miss.
    """

    expire: Duration
    null_expire: Duration | None = None
    max_wait: Duration | None = "5s"
    wait_sleep: Duration = "50ms"
    lock_time: Duration = "10m"
    require_non_null: bool = False

    def __post_init__(self) -> None:
        if self.expire_ms <= 0:
            raise ValueError(f"expire must be positive, got {self.expire!r}")
        if self.null_expire_ms <= 0:
            raise ValueError(f"null_expire must be positive, got {self.null_expire!r}")
        if self.max_wait is not None:
            parse_duration(self.max_wait)
        if self.wait_sleep_ms <= 0:
            raise ValueError(f"wait_sleep must be positive, got {self.wait_sleep!r}")
        if self.lock_time_ms <= 0:
            raise ValueError(f"lock_time must be positive, got {self.lock_time!r}")

    @property
    def expire_ms(self) -> int:
        return parse_duration(self.expire)

    @property
    def null_expire_ms(self) -> int:
        if self.null_expire is None:
            return self.expire_ms
        return parse_duration(self.null_expire) or self.expire_ms

    @property
    def max_wait_ms(self) -> int | None:
        """Wait bound in milliseconds, ``None`` when unbounded."""
        if self.max_wait is None:
            return None
        return parse_duration(self.max_wait)

    @property
    def wait_sleep_ms(self) -> int:
        return parse_duration(self.wait_sleep)

    @property
    def lock_time_ms(self) -> int:
        return parse_duration(self.lock_time)

    @property
    def fail_fast(self) -> bool:
        """True when a held lock should fail immediately instead of waiting."""
        max_wait = self.max_wait_ms
        return max_wait is not None and max_wait <= 0

    def replace(self, **changes: Any) -> CacheConfig:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)
