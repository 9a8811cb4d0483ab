"""Sliding-window rate limiting for YouTube requests.

Each limiter keeps the raw timestamps of its recent requests, so the
window slides continuously instead of resetting on a fixed boundary.
Methods other than acquire() never suspend, which keeps the purge and
update of the window atomic under asyncio.
"""

import asyncio
import logging
import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """A slot would not free up within the allowed wait."""

    def __init__(self, name: str, wait_seconds: float):
        self.name = name
        self.wait_seconds = wait_seconds
        super().__init__(
            f"Rate limit for {name} exhausted, next slot in {math.ceil(wait_seconds)}s"
        )


@dataclass
class RateLimitStatus:
    """Snapshot of a limiter's window."""

    current_requests: int
    max_requests: int
    window_seconds: float
    wait_seconds: float


class RateLimiter:
    """Allow at most max_requests in any window_seconds long window.

    Args:
        max_requests: Requests allowed per window
        window_seconds: Window length
        name: Label used in logs and errors
        max_wait: Longest acquire() may sleep; None waits as long as needed
        clock: Time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        name: str = "requests",
        max_wait: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self.max_wait = max_wait
        self._clock = clock
        self._requests: deque[float] = deque()

    def _cleanup(self) -> float:
        """Drop timestamps that left the window; returns now."""
        now = self._clock()
        cutoff = now - self.window_seconds
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()
        return now

    def can_make_request(self) -> bool:
        """Check if a request fits in the current window."""
        self._cleanup()
        return len(self._requests) < self.max_requests

    def record_request(self) -> None:
        """Record a request made now."""
        now = self._cleanup()
        self._requests.append(now)

    def wait_time(self) -> float:
        """Seconds until a request would fit (0 if one fits now)."""
        now = self._cleanup()
        if len(self._requests) < self.max_requests:
            return 0.0
        # Oldest request leaves the window first
        return max(0.0, self._requests[0] + self.window_seconds - now)

    async def acquire(self) -> None:
        """Wait for a free slot, then record the request.

        Raises:
            RateLimitExceeded: If the wait would exceed max_wait
        """
        wait = self.wait_time()
        if wait > 0:
            if self.max_wait is not None and wait > self.max_wait:
                raise RateLimitExceeded(self.name, wait)
            logger.info(f"Rate limit reached for {self.name}. Waiting {math.ceil(wait)} seconds...")
            await asyncio.sleep(wait)
        self.record_request()

    def status(self) -> RateLimitStatus:
        """Current usage of the window."""
        self._cleanup()
        return RateLimitStatus(
            current_requests=len(self._requests),
            max_requests=self.max_requests,
            window_seconds=self.window_seconds,
            wait_seconds=self.wait_time(),
        )

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._requests.clear()
