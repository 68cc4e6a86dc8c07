"""Tests for the async single-flight guard."""

import asyncio
import time

import pytest
from structlog.testing import capture_logs

from flightcache import (
    NEGATIVE_MARKER,
    AsyncMemoryStore,
    AsyncStampedeGuard,
    AsyncStoreFacade,
    CacheConfig,
    LockDeniedError,
    StoreError,
    WaitTimeoutError,
    create_async_guard,
    lock_key,
)


def counting(value: object, delay: float = 0.0):
    """Build an async compute callback that records how often it ran."""
    calls: list[int] = []

    async def compute() -> object:
        calls.append(1)
        if delay:
            await asyncio.sleep(delay)
        return value

    return compute, calls


class TestReadThrough:
    async def test_round_trip(self, async_guard: AsyncStampedeGuard) -> None:
        compute, calls = counting({"a": 1})
        assert await async_guard.fetch_value("k", compute) == {"a": 1}
        assert await async_guard.fetch_value("k", compute) == {"a": 1}
        assert len(calls) == 1

    async def test_list_fetch(self, async_guard: AsyncStampedeGuard) -> None:
        compute, _ = counting([1, 2, 3])
        assert await async_guard.fetch_list("k", compute, item_type=int) == [1, 2, 3]

    async def test_factory_default_config(self, async_store: AsyncMemoryStore) -> None:
        guard = create_async_guard(async_store, expire="5s")
        compute, _ = counting("v")
        await guard.fetch("k", compute)
        ttl = await async_store.pttl("k")
        assert ttl is not None and 4_000 < ttl <= 5_000

    async def test_invalidate(self, async_guard: AsyncStampedeGuard) -> None:
        compute, calls = counting("v")
        await async_guard.fetch("k", compute)
        assert await async_guard.invalidate("k") is True
        await async_guard.fetch("k", compute)
        assert len(calls) == 2


class TestNegativeCaching:
    async def test_none_is_cached(self, async_guard: AsyncStampedeGuard) -> None:
        compute, calls = counting(None)
        assert await async_guard.fetch("k", compute) is None
        assert await async_guard.fetch("k", compute) is None
        assert len(calls) == 1
        assert await async_guard.facade.get("k") == NEGATIVE_MARKER

    async def test_require_non_null(
        self, async_guard: AsyncStampedeGuard, config: CacheConfig
    ) -> None:
        empty, _ = counting(None)
        await async_guard.fetch("k", empty)
        compute, calls = counting({"a": 1})
        strict = config.replace(require_non_null=True)
        assert await async_guard.fetch_value("k", compute, strict) == {"a": 1}
        assert len(calls) == 1

    async def test_empty_dict_is_a_real_value(
        self, async_guard: AsyncStampedeGuard
    ) -> None:
        compute, calls = counting({})
        assert await async_guard.fetch_value("k", compute) == {}
        assert await async_guard.fetch_value("k", compute) == {}
        assert len(calls) == 1
        assert await async_guard.facade.get("k") == "{}"


class TestSingleFlight:
    async def test_concurrent_fetches_compute_once(
        self, async_guard: AsyncStampedeGuard
    ) -> None:
        compute, calls = counting({"id": "123"}, delay=0.1)
        results = await asyncio.gather(
            *(async_guard.fetch_value("k", compute) for _ in range(5))
        )
        assert all(r == {"id": "123"} for r in results)
        assert len(calls) == 1

    async def test_waiter_takes_value_from_other_holder(
        self, async_guard: AsyncStampedeGuard, async_facade: AsyncStoreFacade
    ) -> None:
        await async_facade.set_if_absent(lock_key("k"), "1m")

        async def holder() -> None:
            await asyncio.sleep(0.1)
            await async_facade.set("k", '"filled"', "10s")
            await async_facade.delete(lock_key("k"))

        task = asyncio.create_task(holder())
        compute, calls = counting("mine")
        assert await async_guard.fetch_value("k", compute) == "filled"
        await task
        assert calls == []


class TestWaitPolicy:
    async def test_fail_fast(
        self,
        async_guard: AsyncStampedeGuard,
        async_facade: AsyncStoreFacade,
        config: CacheConfig,
    ) -> None:
        await async_facade.set_if_absent(lock_key("k"), "1m")
        compute, calls = counting("v")
        begin = time.monotonic()
        with pytest.raises(LockDeniedError):
            await async_guard.fetch("k", compute, config.replace(max_wait=0))
        assert time.monotonic() - begin < 0.05
        assert calls == []

    async def test_wait_timeout(
        self,
        async_guard: AsyncStampedeGuard,
        async_facade: AsyncStoreFacade,
        config: CacheConfig,
    ) -> None:
        await async_facade.set_if_absent(lock_key("k"), "1m")
        compute, calls = counting("v")
        timed = config.replace(max_wait="200ms", wait_sleep="50ms")

        begin = time.monotonic()
        with pytest.raises(WaitTimeoutError):
            await async_guard.fetch("k", compute, timed)
        elapsed = time.monotonic() - begin

        assert 0.2 <= elapsed < 0.3
        assert calls == []

    async def test_cancelled_waiter_propagates(
        self,
        async_guard: AsyncStampedeGuard,
        async_facade: AsyncStoreFacade,
        config: CacheConfig,
    ) -> None:
        await async_facade.set_if_absent(lock_key("k"), "1m")
        compute, _ = counting("v")
        task = asyncio.create_task(
            async_guard.fetch("k", compute, config.replace(max_wait=None))
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestFailures:
    async def test_lock_released_when_compute_raises(
        self,
        async_guard: AsyncStampedeGuard,
        async_facade: AsyncStoreFacade,
    ) -> None:
        async def boom() -> None:
            raise RuntimeError("origin down")

        with pytest.raises(RuntimeError, match="origin down"):
            await async_guard.fetch("k", boom)
        assert await async_facade.get(lock_key("k")) is None

        compute, calls = counting("v")
        assert await async_guard.fetch_value("k", compute) == "v"
        assert len(calls) == 1

    async def test_cancelled_holder_releases_lock(
        self,
        async_guard: AsyncStampedeGuard,
        async_facade: AsyncStoreFacade,
    ) -> None:
        compute, _ = counting("v", delay=10)
        task = asyncio.create_task(async_guard.fetch("k", compute))
        await asyncio.sleep(0.05)
        assert await async_facade.get(lock_key("k")) is not None
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert await async_facade.get(lock_key("k")) is None

    async def test_write_failure_propagates(self, config: CacheConfig) -> None:
        class ReadOnlyStore(AsyncMemoryStore):
            async def set(self, key: str, value: str, ttl_ms: int) -> None:
                raise ConnectionError("READONLY")

        store = ReadOnlyStore()
        guard = AsyncStampedeGuard(AsyncStoreFacade(store), default_config=config)
        compute, _ = counting("v")
        with pytest.raises(StoreError):
            await guard.fetch("k", compute)
        assert await store.get(lock_key("k")) is None

    async def test_encode_failure_is_logged(
        self, async_guard: AsyncStampedeGuard
    ) -> None:
        compute, _ = counting(object())
        with capture_logs() as logs, pytest.raises(StoreError):
            await async_guard.fetch("k", compute)
        assert any(
            log["event"] == "cache fill write failed" and log["log_level"] == "error"
            for log in logs
        )
        assert await async_guard.facade.get(lock_key("k")) is None


class TestCachedDecorator:
    async def test_caches_per_arguments(
        self, async_guard: AsyncStampedeGuard
    ) -> None:
        calls: list[str] = []

        @async_guard.cached()
        async def get_post(post_id: str) -> dict:
            calls.append(post_id)
            return {"id": post_id}

        assert await get_post("p1") == {"id": "p1"}
        assert await get_post("p1") == {"id": "p1"}
        assert await get_post("p2") == {"id": "p2"}
        assert calls == ["p1", "p2"]
