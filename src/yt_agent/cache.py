"""In-memory transcript cache with TTL expiry and LRU eviction."""

import asyncio
import contextlib
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from .config import DEFAULT_CACHE_SIZE, DEFAULT_CACHE_SWEEP_INTERVAL, DEFAULT_CACHE_TTL_HOURS
from .models import CacheEntry, TranscriptResult

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache size and entry age range."""

    size: int
    max_size: int
    oldest_entry: float | None
    newest_entry: float | None


class TranscriptCache:
    """Transcript results keyed by video ID.

    Entries expire ttl_hours after insertion. When full, the least recently
    used entry is evicted; both get() and set() count as use. Only error-free
    results are stored, so a transient failure is retried on the next lookup.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        ttl_hours: float = DEFAULT_CACHE_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl = ttl_hours * 60 * 60  # seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, video_id: str) -> bool:
        return video_id in self._entries

    def get(self, video_id: str) -> TranscriptResult | None:
        """Get a cached result, or None if missing or expired."""
        entry = self._entries.get(video_id)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[video_id]
            logger.debug(f"Cache entry expired for {video_id}")
            return None

        self._entries.move_to_end(video_id)
        return entry.result

    def set(self, video_id: str, result: TranscriptResult) -> None:
        """Store a result; errored results are ignored."""
        if result.error:
            return

        # Replacing an entry must not evict a different one
        self._entries.pop(video_id, None)
        if len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {evicted}")

        now = self._clock()
        self._entries[video_id] = CacheEntry(result=result, created_at=now, expires_at=now + self.ttl)

    def clear_expired(self) -> int:
        """Delete all expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> CacheStats:
        """Size and creation time range of current entries."""
        created = [entry.created_at for entry in self._entries.values()]
        return CacheStats(
            size=len(self._entries),
            max_size=self.max_size,
            oldest_entry=min(created) if created else None,
            newest_entry=max(created) if created else None,
        )

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    # Background expiry, so memory stays bounded when nothing reads the cache

    async def _sweep(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.clear_expired()

    def start_sweeper(self, interval: float = DEFAULT_CACHE_SWEEP_INTERVAL) -> asyncio.Task:
        """Start periodic clear_expired() on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep(interval))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
