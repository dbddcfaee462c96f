"""Client-side token bucket matching the API's published request quota."""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Awaitable, Callable

from loguru import logger

from .transport import RequestConfig

DEFAULT_REQUESTS_PER_WINDOW = 10
DEFAULT_WINDOW = 10.0


class RateLimiter:
    """Token bucket refilled proportionally to elapsed time.

    Waiters are served one at a time in arrival order. ``clock`` and
    ``sleep`` are injectable so tests can drive time explicitly.
    """

    def __init__(
        self,
        requests_per_window: int = DEFAULT_REQUESTS_PER_WINDOW,
        window: float = DEFAULT_WINDOW,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if requests_per_window <= 0 or window <= 0:
            raise ValueError("requests_per_window and window must be positive")
        self._capacity = requests_per_window
        self._window = window
        self._enabled = enabled
        self._clock = clock
        self._sleep = sleep
        self._tokens = requests_per_window
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def available_tokens(self) -> int:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed >= self._window:
            self._tokens = self._capacity
            self._last_refill = now
        elif elapsed > 0:
            added = math.floor(elapsed / self._window * self._capacity)
            if added > 0:
                self._tokens = min(self._tokens + added, self._capacity)
                self._last_refill = now

    def _time_until_next_token(self) -> float:
        return self._window / self._capacity

    async def acquire(self) -> None:
        """Consume one token, sleeping until one is available."""

        if not self._enabled:
            return
        async with self._lock:
            while True:
                self._refill()
                if self._tokens > 0:
                    self._tokens -= 1
                    return
                wait = self._time_until_next_token()
                logger.debug(f"Rate limit reached; waiting {wait:.2f}s")
                await self._sleep(wait)

    def reset(self) -> None:
        self._tokens = self._capacity
        self._last_refill = self._clock()

    def as_interceptor(self) -> Callable[[RequestConfig], Awaitable[RequestConfig]]:
        """Request interceptor that waits for a token before letting the call through."""

        async def interceptor(config: RequestConfig) -> RequestConfig:
            await self.acquire()
            return config

        return interceptor
