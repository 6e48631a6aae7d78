"""Tests for the result cache — in-memory SQLite, controlled clock."""

from datetime import date

import pytest
from sqlalchemy import func, select

from analysis_gateway.models.cached_analyses import CachedAnalysis
from analysis_gateway.services.result_cache import ResultCache

DAY = 86400


@pytest.fixture
def cache(session_factory, clock):
    return ResultCache(session_factory=session_factory, clock=clock)


async def _rows(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(CachedAnalysis))


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_miss_on_empty_cache(self, cache):
        assert await cache.get(1, "analysis", "en") is None

    @pytest.mark.asyncio
    async def test_put_then_get(self, cache):
        result = {"homeWinProb": 40, "advice": "Close game", "recommendedBets": [{"type": "MS1"}]}
        assert await cache.put(1, "analysis", "en", result, ttl=DAY) is True
        assert await cache.get(1, "analysis", "en") == result

    @pytest.mark.asyncio
    async def test_key_includes_scope_and_variant(self, cache):
        await cache.put(1, "analysis", "en", {"advice": "english"}, ttl=DAY)
        assert await cache.get(1, "analysis", "tr") is None
        assert await cache.get(1, "predictions", "en") is None
        assert await cache.get(2, "analysis", "en") is None

    @pytest.mark.asyncio
    async def test_unicode_payload(self, cache):
        result = {"advice": "Ev sahibi üstün; çifte şans öneriliyor."}
        await cache.put(7, "analysis", "tr", result, ttl=DAY)
        assert await cache.get(7, "analysis", "tr") == result


class TestExpiry:
    @pytest.mark.asyncio
    async def test_fresh_then_expired(self, cache, clock, session_factory):
        """Stored at t0 with 24h TTL: hit at t0+1h, miss at t0+25h while the row still exists."""
        await cache.put(5, "analysis", "en", {"advice": "x"}, ttl=DAY)

        clock.advance(hours=1)
        assert await cache.get(5, "analysis", "en") == {"advice": "x"}

        clock.advance(hours=24)
        assert await cache.get(5, "analysis", "en") is None
        assert await _rows(session_factory) == 1

    @pytest.mark.asyncio
    async def test_expiry_boundary_is_a_miss(self, cache, clock):
        await cache.put(5, "analysis", "en", {"advice": "x"}, ttl=60)
        clock.advance(seconds=60)
        assert await cache.get(5, "analysis", "en") is None

    @pytest.mark.asyncio
    async def test_rewrite_replaces_payload_and_expiry(self, cache, clock, session_factory):
        await cache.put(5, "analysis", "en", {"advice": "old"}, ttl=DAY)
        clock.advance(hours=25)
        assert await cache.get(5, "analysis", "en") is None

        await cache.put(5, "analysis", "en", {"advice": "new"}, ttl=DAY)
        assert await cache.get(5, "analysis", "en") == {"advice": "new"}
        assert await _rows(session_factory) == 1


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_evict_by_fixture(self, cache):
        await cache.put(1, "analysis", "en", {"a": 1}, ttl=DAY)
        await cache.put(1, "predictions", "en", {"b": 2}, ttl=DAY)
        await cache.put(2, "analysis", "en", {"c": 3}, ttl=DAY)

        assert await cache.evict(1, scope="predictions") == 1
        assert await cache.get(1, "analysis", "en") == {"a": 1}
        assert await cache.evict(1) == 1
        assert await cache.get(1, "analysis", "en") is None
        assert await cache.get(2, "analysis", "en") == {"c": 3}

    @pytest.mark.asyncio
    async def test_purge_by_source_date(self, cache, session_factory):
        await cache.put(1, "analysis", "en", {"a": 1}, ttl=DAY, source_date=date(2025, 3, 1))
        await cache.put(2, "analysis", "en", {"b": 2}, ttl=DAY, source_date=date(2025, 3, 16))

        assert await cache.purge(before=date(2025, 3, 10)) == 1
        assert await _rows(session_factory) == 1
        assert await cache.get(2, "analysis", "en") == {"b": 2}

    @pytest.mark.asyncio
    async def test_source_date_defaults_to_today(self, cache, session_factory):
        await cache.put(1, "analysis", "en", {"a": 1}, ttl=DAY)
        async with session_factory() as session:
            row = await session.scalar(select(CachedAnalysis))
        assert row.source_date == date(2025, 3, 14)


class TestFailOpen:
    @pytest.mark.asyncio
    async def test_get_on_broken_store_is_a_miss(self, broken_session_factory, clock):
        cache = ResultCache(session_factory=broken_session_factory, clock=clock)
        assert await cache.get(1, "analysis", "en") is None

    @pytest.mark.asyncio
    async def test_put_on_broken_store_returns_false(self, broken_session_factory, clock):
        cache = ResultCache(session_factory=broken_session_factory, clock=clock)
        assert await cache.put(1, "analysis", "en", {"a": 1}, ttl=DAY) is False
