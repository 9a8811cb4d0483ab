"""Tests for the transcript cache."""

import asyncio

import pytest

from yt_agent.cache import TranscriptCache

HOUR = 60 * 60


class TestTranscriptCache:
    """Tests for get/set, expiry and eviction."""

    def test_invalid_size(self) -> None:
        """Test max_size must be positive."""
        with pytest.raises(ValueError):
            TranscriptCache(max_size=0)

    def test_set_and_get(self, clock, make_result) -> None:
        """Test a stored result comes back unchanged."""
        cache = TranscriptCache(clock=clock)
        result = make_result()

        cache.set(result.video_id, result)

        assert cache.get(result.video_id) == result
        assert result.video_id in cache
        assert len(cache) == 1

    def test_miss(self, clock) -> None:
        """Test an unknown ID is a miss."""
        cache = TranscriptCache(clock=clock)
        assert cache.get("dQw4w9WgXcQ") is None

    def test_errored_result_not_stored(self, clock, make_result) -> None:
        """Test failed results are never cached."""
        cache = TranscriptCache(clock=clock)
        result = make_result(error="Failed to fetch transcript")

        cache.set(result.video_id, result)

        assert len(cache) == 0
        assert cache.get(result.video_id) is None

    def test_expiry_on_get(self, clock, make_result) -> None:
        """Test entries expire after the TTL and are removed on access."""
        cache = TranscriptCache(ttl_hours=1, clock=clock)
        result = make_result()
        cache.set(result.video_id, result)

        clock.advance(HOUR)
        assert cache.get(result.video_id) == result

        clock.advance(1)
        assert cache.get(result.video_id) is None
        assert result.video_id not in cache

    def test_evicts_least_recently_used(self, clock, make_result) -> None:
        """Test a full cache evicts the least recently used entry."""
        cache = TranscriptCache(max_size=2, clock=clock)
        first, second, third = (make_result(v) for v in ("aaaaaaaaaaa", "bbbbbbbbbbb", "ccccccccccc"))

        cache.set(first.video_id, first)
        cache.set(second.video_id, second)
        # Touch first so second becomes least recently used
        cache.get(first.video_id)
        cache.set(third.video_id, third)

        assert len(cache) == 2
        assert first.video_id in cache
        assert second.video_id not in cache
        assert third.video_id in cache

    def test_replace_does_not_evict(self, clock, make_result) -> None:
        """Test re-setting an existing key keeps the other entries."""
        cache = TranscriptCache(max_size=2, clock=clock)
        first, second = make_result("aaaaaaaaaaa"), make_result("bbbbbbbbbbb")
        cache.set(first.video_id, first)
        cache.set(second.video_id, second)

        cache.set(first.video_id, first)

        assert len(cache) == 2
        assert second.video_id in cache

    def test_replace_refreshes_expiry(self, clock, make_result) -> None:
        """Test re-setting an entry restarts its TTL."""
        cache = TranscriptCache(ttl_hours=1, clock=clock)
        result = make_result()
        cache.set(result.video_id, result)
        clock.advance(HOUR - 10)
        cache.set(result.video_id, result)
        clock.advance(HOUR - 10)

        assert cache.get(result.video_id) == result

    def test_clear_expired(self, clock, make_result) -> None:
        """Test clear_expired removes only expired entries."""
        cache = TranscriptCache(ttl_hours=1, clock=clock)
        old = make_result("aaaaaaaaaaa")
        cache.set(old.video_id, old)
        clock.advance(HOUR / 2)
        new = make_result("bbbbbbbbbbb")
        cache.set(new.video_id, new)
        clock.advance(HOUR / 2 + 1)

        assert cache.clear_expired() == 1
        assert old.video_id not in cache
        assert new.video_id in cache

    def test_stats(self, clock, make_result) -> None:
        """Test stats reports size and entry ages."""
        cache = TranscriptCache(max_size=5, clock=clock)
        assert cache.stats().oldest_entry is None

        cache.set("aaaaaaaaaaa", make_result("aaaaaaaaaaa"))
        clock.advance(10)
        cache.set("bbbbbbbbbbb", make_result("bbbbbbbbbbb"))

        stats = cache.stats()
        assert stats.size == 2
        assert stats.max_size == 5
        assert stats.oldest_entry == 1000.0
        assert stats.newest_entry == 1010.0

    def test_clear(self, clock, make_result) -> None:
        """Test clear empties the cache."""
        cache = TranscriptCache(clock=clock)
        cache.set("aaaaaaaaaaa", make_result("aaaaaaaaaaa"))
        cache.clear()
        assert len(cache) == 0


class TestCacheSweeper:
    """Tests for the background expiry task."""

    async def test_sweeper_clears_expired(self, clock, make_result) -> None:
        """Test the sweeper removes expired entries without any get()."""
        cache = TranscriptCache(ttl_hours=1, clock=clock)
        cache.set("aaaaaaaaaaa", make_result("aaaaaaaaaaa"))
        clock.advance(HOUR + 1)

        cache.start_sweeper(interval=0.01)
        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        await cache.stop_sweeper()

        assert len(cache) == 0

    async def test_start_twice_reuses_task(self, clock) -> None:
        """Test starting a running sweeper returns the same task."""
        cache = TranscriptCache(clock=clock)
        task = cache.start_sweeper(interval=60)

        assert cache.start_sweeper(interval=60) is task

        await cache.stop_sweeper()
        assert task.cancelled()

    async def test_stop_without_start(self, clock) -> None:
        """Test stopping a never-started sweeper is a no-op."""
        cache = TranscriptCache(clock=clock)
        await cache.stop_sweeper()
