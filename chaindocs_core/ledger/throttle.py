"""Sliding-window request throttle for ledger reads.

Public RPC endpoints answer bursts with HTTP 429, so every read is paced through
one shared RequestThrottle: at most ``max_requests`` calls start inside any trailing
``window`` seconds. Requests are only ever delayed, never dropped.
"""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

from chaindocs_core.logging import get_chaindocs_logger

logger = get_chaindocs_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_REQUESTS = 8
DEFAULT_WINDOW = 1.0
SAFETY_MARGIN = 0.01


class RequestThrottle:
    """Limit request starts to ``max_requests`` per trailing ``window`` seconds.

    Window bookkeeping is serialized by an asyncio.Lock that is released while a
    caller sleeps, so concurrent strategies interleave fairly. After each sleep
    the check is repeated: other callers may have taken the freed slot.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window: float = DEFAULT_WINDOW,
        *,
        margin: float = SAFETY_MARGIN,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {max_requests}")
        if window <= 0:
            raise ValueError(f"window must be > 0, got {window}")
        self.max_requests = max_requests
        self.window = window
        self.margin = margin
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()

    async def acquire(self) -> None:
        """Wait until one more request fits in the window, then record it."""
        while True:
            async with self._lock:
                now = self._clock()
                self._evict(now)
                if len(self._timestamps) < self.max_requests:
                    self._timestamps.append(now)
                    return
                wait = self.window - (now - self._timestamps[0]) + self.margin
            logger.debug(f"Throttle full ({self.max_requests}/{self.window:.2f}s), waiting {wait:.3f}s")
            await self._sleep(max(wait, 0.0))

    async def run(self, request_fn: Callable[[], Awaitable[T]]) -> T:
        """Acquire a slot and await the request."""
        await self.acquire()
        return await request_fn()

    @property
    def recent_requests(self) -> int:
        """Requests recorded inside the current window."""
        now = self._clock()
        return sum(1 for stamp in self._timestamps if now - stamp < self.window)
