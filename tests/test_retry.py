import asyncio
import random

import pytest

from maps_client.exceptions import HttpStatusError, LegacyServiceError, TransportError
from maps_client.models import LegacyStatus
from maps_client.retry import BackoffPolicy, RetryExecutor, retry_with_backoff


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class Flaky:
    """Raises the given errors in order, then returns ``result``"""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.attempts = 0

    async def __call__(self):
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def make_executor(policy, clock=None, sleeps=None):
    async def fake_sleep(seconds):
        if sleeps is not None:
            sleeps.append(seconds)
        if clock is not None:
            clock.now += seconds

    return RetryExecutor(policy, clock=clock or FakeClock(), sleep=fake_sleep, rng=random.Random(7))


def test_default_policy_values():
    policy = BackoffPolicy()
    assert policy.initial_interval == 0.5
    assert policy.multiplier == 1.5
    assert policy.max_interval == 60.0
    assert policy.max_elapsed_time == 900.0
    assert policy.jitter_fraction == 0.5


def test_delay_never_exceeds_max_interval():
    policy = BackoffPolicy()
    rng = random.Random(1234)
    for attempt in range(1, 300):
        delay = policy.delay(attempt, rng)
        assert 0.0 <= delay <= policy.max_interval


def test_base_delay_is_non_decreasing_until_cap():
    policy = BackoffPolicy(initial_interval=0.5, multiplier=1.5, max_interval=10.0)
    previous = 0.0
    for attempt in range(1, 50):
        delay = policy.base_delay(attempt)
        assert delay >= previous
        previous = delay
    assert policy.base_delay(1) == 0.5
    assert policy.base_delay(2) == pytest.approx(0.75)
    assert policy.base_delay(3) == pytest.approx(1.125)
    assert policy.base_delay(49) == 10.0


def test_base_delay_survives_huge_attempt_numbers():
    policy = BackoffPolicy(multiplier=10.0)
    assert policy.base_delay(10_000) == policy.max_interval


def test_jitter_stays_within_fraction():
    policy = BackoffPolicy(initial_interval=1.0, jitter_fraction=0.5, max_interval=100.0)
    rng = random.Random(99)
    for _ in range(200):
        assert 0.5 <= policy.delay(1, rng) <= 1.5


def test_invalid_policies_rejected():
    with pytest.raises(ValueError):
        BackoffPolicy(multiplier=0.5)
    with pytest.raises(ValueError):
        BackoffPolicy(jitter_fraction=1.5)
    with pytest.raises(ValueError):
        BackoffPolicy(max_attempts=0)


@pytest.mark.asyncio
async def test_success_returns_immediately():
    sleeps = []
    op = Flaky([])
    result = await make_executor(BackoffPolicy(), sleeps=sleeps).execute(op)
    assert result == "ok"
    assert op.attempts == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_permanent_error_attempted_once():
    error = LegacyServiceError(LegacyStatus.REQUEST_DENIED)
    op = Flaky([error] * 10)
    with pytest.raises(LegacyServiceError) as exc_info:
        await make_executor(BackoffPolicy()).execute(op)
    assert exc_info.value is error
    assert op.attempts == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [1, 2, 5])
async def test_transient_failures_then_success(failures):
    sleeps = []
    op = Flaky([TransportError(f"reset {i}") for i in range(failures)])
    policy = BackoffPolicy(jitter_fraction=0.0)
    result = await make_executor(policy, sleeps=sleeps).execute(op)
    assert result == "ok"
    assert op.attempts == failures + 1
    assert sleeps == [policy.base_delay(n) for n in range(1, failures + 1)]


@pytest.mark.asyncio
async def test_max_attempts_returns_last_error():
    errors = [HttpStatusError(503), HttpStatusError(502), HttpStatusError(500)]
    last = errors[-1]
    op = Flaky(errors)
    with pytest.raises(HttpStatusError) as exc_info:
        await make_executor(BackoffPolicy(max_attempts=3)).execute(op)
    assert exc_info.value is last
    assert op.attempts == 3


@pytest.mark.asyncio
async def test_max_elapsed_time_stops_retrying():
    clock = FakeClock()
    policy = BackoffPolicy(
        initial_interval=10.0,
        multiplier=1.0,
        jitter_fraction=0.0,
        max_elapsed_time=35.0,
    )
    op = Flaky([TransportError("down")] * 100)
    with pytest.raises(TransportError):
        await make_executor(policy, clock=clock).execute(op)
    # Failures at t=0, 10, 20, 30 retry; the failure at t=40 is past the budget
    assert op.attempts == 5


@pytest.mark.asyncio
async def test_unclassifiable_fault_propagates_without_retry():
    op = Flaky([RuntimeError("bug")])
    with pytest.raises(RuntimeError):
        await make_executor(BackoffPolicy()).execute(op)
    assert op.attempts == 1


@pytest.mark.asyncio
async def test_on_retry_callback_sees_each_failure():
    seen = []

    async def on_retry(attempt, error):
        seen.append((attempt, str(error)))

    op = Flaky([TransportError("a"), TransportError("b")])
    await make_executor(BackoffPolicy()).execute(op, on_retry=on_retry)
    assert seen == [(1, "a"), (2, "b")]


@pytest.mark.asyncio
async def test_sleep_between_attempts_is_cancellable():
    op = Flaky([TransportError("down")] * 10)
    executor = RetryExecutor(BackoffPolicy(initial_interval=30.0, jitter_fraction=0.0))
    task = asyncio.create_task(executor.execute(op))
    await asyncio.sleep(0.05)
    assert op.attempts == 1
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert op.attempts == 1


@pytest.mark.asyncio
async def test_retry_with_backoff_passes_arguments():
    calls = []

    async def fetch(a, b=None):
        calls.append((a, b))
        if len(calls) < 2:
            raise TransportError("blip")
        return a + b

    policy = BackoffPolicy(initial_interval=0.0, jitter_fraction=0.0)
    assert await retry_with_backoff(fetch, 1, b=2, policy=policy) == 3
    assert calls == [(1, 2), (1, 2)]
