"""Shared pytest fixtures."""

import pytest

from flightcache import (
    AsyncMemoryStore,
    AsyncStampedeGuard,
    AsyncStoreFacade,
    CacheConfig,
    MemoryStore,
    StampedeGuard,
    StoreFacade,
)


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    """Create a fresh MemoryStore for each test."""
    return MemoryStore()


@pytest.fixture
def async_store() -> AsyncMemoryStore:
    """Create a fresh AsyncMemoryStore for each test."""
    return AsyncMemoryStore()


@pytest.fixture
def facade(store: MemoryStore) -> StoreFacade:
    return StoreFacade(store)


@pytest.fixture
def async_facade(async_store: AsyncMemoryStore) -> AsyncStoreFacade:
    return AsyncStoreFacade(async_store)


@pytest.fixture
def config() -> CacheConfig:
    """Short timings so waiting tests stay fast."""
    return CacheConfig(expire="10s", max_wait="2s", wait_sleep="10ms", lock_time="5s")


@pytest.fixture
def guard(facade: StoreFacade, config: CacheConfig) -> StampedeGuard:
    return StampedeGuard(facade, default_config=config)


@pytest.fixture
def async_guard(
    async_facade: AsyncStoreFacade, config: CacheConfig
) -> AsyncStampedeGuard:
    return AsyncStampedeGuard(async_facade, default_config=config)
