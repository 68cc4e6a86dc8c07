"""Tests for package exports."""


def test_public_api_available() -> None:
    """Test that the public API is importable from the package root."""
    from flightcache import (
        LOCK_PREFIX,
        NEGATIVE_MARKER,
        AsyncRedisStore,
        AsyncStampedeGuard,
        CacheConfig,
        MemoryStore,
        RedisStore,
        StampedeGuard,
        create_guard,
    )

    assert StampedeGuard is not None
    assert AsyncStampedeGuard is not None
    assert CacheConfig is not None
    assert MemoryStore is not None
    assert RedisStore is not None
    assert AsyncRedisStore is not None
    assert create_guard is not None
    assert NEGATIVE_MARKER == "!&*!{}"
    assert LOCK_PREFIX


def test_error_hierarchy() -> None:
    from flightcache import (
        FlightCacheError,
        LockDeniedError,
        StoreError,
        WaitTimeoutError,
    )

    for error in (StoreError, WaitTimeoutError, LockDeniedError):
        assert issubclass(error, FlightCacheError)


def test_lock_key_is_namespaced() -> None:
    from flightcache import LOCK_PREFIX, lock_key

    assert lock_key("user:1") == f"{LOCK_PREFIX}user:1"
    assert lock_key("user:1") != "user:1"
