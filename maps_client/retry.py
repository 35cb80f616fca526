"""Retry logic with exponential backoff"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from loguru import logger

from .classifier import classify
from .config import (
    BACKOFF_MULTIPLIER,
    INITIAL_BACKOFF,
    JITTER_FRACTION,
    MAX_ATTEMPTS,
    MAX_BACKOFF,
    MAX_ELAPSED_TIME,
)
from .exceptions import MapsClientError

T = TypeVar("T")

# Errors the retry loop knows how to classify; anything else propagates untouched
RETRYABLE_TYPES = (MapsClientError, httpx.HTTPError)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff configuration.

    delay(n) = min(initial * multiplier^(n-1), max_interval), perturbed by
    +/- jitter_fraction * delay and kept within [0, max_interval].
    """

    initial_interval: float = INITIAL_BACKOFF
    multiplier: float = BACKOFF_MULTIPLIER
    max_interval: float = MAX_BACKOFF
    max_elapsed_time: Optional[float] = MAX_ELAPSED_TIME
    jitter_fraction: float = JITTER_FRACTION
    max_attempts: Optional[int] = MAX_ATTEMPTS

    def __post_init__(self):
        if self.initial_interval < 0 or self.max_interval < 0:
            raise ValueError("backoff intervals must be non-negative")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= self.jitter_fraction <= 1.0:
            raise ValueError("jitter_fraction must be within [0, 1]")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def base_delay(self, attempt: int) -> float:
        """Unperturbed delay after the given 1-based attempt"""
        exponent = max(attempt - 1, 0)
        try:
            delay = self.initial_interval * (self.multiplier**exponent)
        except OverflowError:
            delay = self.max_interval
        return min(max(delay, 0.0), self.max_interval)

    def delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Delay with jitter after the given 1-based attempt"""
        delay = self.base_delay(attempt)
        spread = self.jitter_fraction * delay
        if spread > 0:
            uniform = rng.uniform if rng is not None else random.uniform
            delay += uniform(-spread, spread)
        return min(max(delay, 0.0), self.max_interval)


DEFAULT_BACKOFF = BackoffPolicy()


class RetryExecutor:
    """
    Drives the attempt loop for one logical call.

    All state (attempt counter, clock, schedule) is local to one execute()
    call, so a single executor can be shared between concurrent calls.
    """

    def __init__(
        self,
        policy: BackoffPolicy = DEFAULT_BACKOFF,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.policy = policy
        self._clock = clock
        self._sleep = sleep
        self._rng = rng

    async def execute(
        self,
        op: Callable[[], Awaitable[T]],
        on_retry: Optional[Callable[[int, BaseException], Awaitable[Any]]] = None,
    ) -> T:
        """
        Run ``op`` until it succeeds, fails permanently, or the budget runs out.

        Raises the last observed error, never a wrapper.
        """
        policy = self.policy
        start = self._clock()
        attempt = 1

        while True:
            try:
                result = await op()
            except RETRYABLE_TYPES as e:
                classified = classify(e)
                if classified.is_permanent:
                    logger.error(f"❌ Attempt {attempt} failed (permanent): {e}")
                    raise

                elapsed = self._clock() - start
                if policy.max_attempts is not None and attempt >= policy.max_attempts:
                    logger.error(f"❌ Failed after {attempt} attempts: {e}")
                    raise
                if policy.max_elapsed_time is not None and elapsed >= policy.max_elapsed_time:
                    logger.error(f"❌ Gave up after {elapsed:.1f}s and {attempt} attempts: {e}")
                    raise

                sleep_time = policy.delay(attempt, self._rng)
                logger.warning(
                    f"⚠️ Attempt {attempt} failed ({classified.classification.value}): {e}"
                )
                logger.info(f"   Retrying in {sleep_time:.2f}s...")

                if on_retry:
                    await on_retry(attempt, e)

                await self._sleep(sleep_time)
                attempt += 1
                continue

            if attempt > 1:
                logger.success(f"✓ Recovered after {attempt - 1} retries")
            return result


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    policy: BackoffPolicy = DEFAULT_BACKOFF,
    on_retry: Optional[Callable[[int, BaseException], Awaitable[Any]]] = None,
    **kwargs,
) -> T:
    """
    Execute function with exponential backoff retry logic.

    Args:
        func: Async function to execute
        policy: Backoff policy to follow
        on_retry: Optional callback called on each retry: on_retry(attempt, error)
    """
    return await RetryExecutor(policy).execute(lambda: func(*args, **kwargs), on_retry=on_retry)
