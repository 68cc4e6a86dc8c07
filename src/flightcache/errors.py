"""Error types raised by flightcache."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class FlightCacheError(Exception):
    """Base class for flightcache failures."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class StoreError(FlightCacheError):
    """The backing store failed (transport, protocol or serialization)."""

    def __init__(self, message: str, *, key: str | None = None, operation: str) -> None:
        super().__init__(message, key=key)
        self.operation = operation


class WaitTimeoutError(FlightCacheError):
    """Waiting for another holder to fill a key took longer than ``max_wait``."""

    def __init__(self, message: str, *, key: str | None = None, waited_ms: int) -> None:
        super().__init__(message, key=key)
        self.waited_ms = waited_ms


class LockDeniedError(FlightCacheError):
    """Fail-fast fetch found the fill lock already held."""


@contextmanager
def store_errors(operation: str, key: str) -> Iterator[None]:
    """Translate any store or (de)serialization failure into StoreError."""
    try:
        yield
    except StoreError:
        raise
    except Exception as exc:
        raise StoreError(
            f"{operation} failed for key {key!r}: {exc}",
            key=key,
            operation=operation,
        ) from exc
