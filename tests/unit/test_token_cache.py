"""Unit tests for the access token cache."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from songmatch.core.config import Settings
from songmatch.core.token_cache import AccessTokenCache


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> AsyncMock:
    return AsyncMock(side_effect=[("token-1", 3600), ("token-2", 3600)])


class TestAccessTokenCache:
    async def test_token_is_reused_until_expiry(self, fetcher, clock):
        cache = AccessTokenCache(fetcher, expiry_skew_seconds=60, clock=clock)

        assert await cache.get_token() == "token-1"
        clock.advance(3000)
        assert await cache.get_token() == "token-1"
        assert fetcher.await_count == 1

    async def test_refreshes_inside_skew(self, fetcher, clock):
        cache = AccessTokenCache(fetcher, expiry_skew_seconds=60, clock=clock)

        await cache.get_token()
        clock.advance(3540)

        assert cache.is_valid is False
        assert await cache.get_token() == "token-2"
        assert fetcher.await_count == 2

    async def test_invalidate_forces_refetch(self, fetcher, clock):
        cache = AccessTokenCache(fetcher, clock=clock)

        await cache.get_token()
        cache.invalidate()

        assert await cache.get_token() == "token-2"

    async def test_concurrent_callers_share_one_refresh(self, clock):
        calls = []

        async def slow_fetch():
            calls.append(clock())
            await asyncio.sleep(0)
            return "token-1", 3600

        cache = AccessTokenCache(slow_fetch, clock=clock)

        tokens = await asyncio.gather(*(cache.get_token() for _ in range(5)))

        assert tokens == ["token-1"] * 5
        assert len(calls) == 1

    async def test_fetch_failure_propagates(self, clock):
        cache = AccessTokenCache(AsyncMock(side_effect=RuntimeError("auth down")), clock=clock)

        with pytest.raises(RuntimeError):
            await cache.get_token()
        assert cache.is_valid is False

    def test_from_settings_uses_skew(self, fetcher):
        cache = AccessTokenCache.from_settings(fetcher, Settings(TOKEN_EXPIRY_SKEW_SECONDS=5))
        assert cache._skew == timedelta(seconds=5)
