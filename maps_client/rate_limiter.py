"""Per-scope fixed-window rate limiter"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from .models import Api


@dataclass
class RateWindow:
    """Fixed window counter for one scope"""

    max_per_window: int
    duration: float
    window_start: Optional[float] = None
    count: int = 0

    def roll(self, now: float) -> None:
        if self.window_start is None or now - self.window_start >= self.duration:
            self.window_start = now
            self.count = 0

    def has_capacity(self) -> bool:
        return self.count < self.max_per_window

    def wait_time(self, now: float) -> float:
        if self.window_start is None:
            return 0.0
        return max(0.0, self.window_start + self.duration - now)


class RateLimiter:
    """
    Gates outgoing calls against per-scope quotas.

    Each scope has its own asyncio.Lock. A call takes the locks for all of its
    limited scopes in a fixed order, waits until every window has room, then
    reserves one unit in each. asyncio.Lock wakes waiters in FIFO order, so
    older calls are admitted before newer ones in the same scope.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Initialize rate limiter.

        Args:
            clock: Monotonic clock in seconds; defaults to the running loop's clock
        """
        self._clock = clock
        self._windows: Dict[Api, RateWindow] = {}
        self._locks: Dict[Api, asyncio.Lock] = {}

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def set_rate(self, api: Api, requests: int, duration: float) -> "RateLimiter":
        """
        Limit ``api`` to ``requests`` calls per ``duration`` seconds.

        Api.ALL is observed by every call in addition to its own API.
        """
        if requests < 1:
            raise ValueError("requests must be at least 1")
        if duration <= 0:
            raise ValueError("duration must be positive")
        window = self._windows.get(api)
        if window is None:
            self._windows[api] = RateWindow(max_per_window=requests, duration=duration)
        else:
            # Keep the current window and its count so a live scope is not reset
            window.max_per_window = requests
            window.duration = duration
        self._locks.setdefault(api, asyncio.Lock())
        logger.debug(f"Rate limit set: {api.value} = {requests} per {duration:g}s")
        return self

    def clear_rate(self, api: Api) -> None:
        """Stop limiting ``api``. Callers waiting on it are released on their next check."""
        self._windows.pop(api, None)

    def is_limited(self, api: Api) -> bool:
        return api in self._windows

    def _limited_scopes(self, scopes: Iterable[Api]) -> List[Api]:
        return sorted({s for s in scopes if s in self._windows}, key=lambda s: s.value)

    async def admit(self, scopes: Iterable[Api]) -> None:
        """Suspend until every limited scope has capacity, then reserve one unit in each"""
        limited = self._limited_scopes(scopes)
        if not limited:
            return

        # Fixed acquisition order keeps overlapping scope sets deadlock-free
        acquired: List[asyncio.Lock] = []
        try:
            for api in limited:
                lock = self._locks[api]
                await lock.acquire()
                acquired.append(lock)

            while True:
                now = self._now()
                windows = [w for w in (self._windows.get(api) for api in limited) if w is not None]
                for window in windows:
                    window.roll(now)
                full = [w for w in windows if not w.has_capacity()]
                if not full:
                    for window in windows:
                        window.count += 1
                    return

                wait_time = max(w.wait_time(now) for w in full)
                logger.debug(
                    f"Rate limiter waiting {wait_time:.3f}s for "
                    f"{', '.join(api.value for api in limited)}"
                )
                await asyncio.sleep(wait_time)
        finally:
            for lock in reversed(acquired):
                lock.release()
