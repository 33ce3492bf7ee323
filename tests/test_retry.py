"""Tests for the shared retry policy."""

from __future__ import annotations

import pytest

from panelsync.exceptions import PanelError, RetryExhaustedError
from panelsync.services.retry import RetryPolicy, fixed, linear, progressive


def _recorder():
    slept: list[float] = []

    async def _sleep(seconds: float) -> None:
        slept.append(seconds)

    return slept, _sleep


class TestDelays:
    def test_no_delay_before_first_attempt(self):
        assert progressive(4, [1, 3, 5]).delay_before(1) == 0.0

    def test_progressive_schedule(self):
        policy = progressive(4, [1, 3, 5])
        assert [policy.delay_before(n) for n in (2, 3, 4)] == [1.0, 3.0, 5.0]

    def test_last_delay_repeats(self):
        policy = progressive(5, [1, 3])
        assert policy.delay_before(5) == 3.0

    def test_linear_schedule(self):
        policy = linear(3, 1.0)
        assert [policy.delay_before(n) for n in (2, 3)] == [1.0, 2.0]

    def test_fixed_schedule(self):
        policy = fixed(3, 2.0)
        assert [policy.delay_before(n) for n in (2, 3)] == [2.0, 2.0]


class TestRun:
    @pytest.mark.asyncio
    async def test_first_success(self):
        slept, sleep = _recorder()
        calls = []

        async def _fn(attempt):
            calls.append(attempt)
            return "done"

        assert await fixed(3, 1.0, sleep=sleep).run(_fn) == "done"
        assert calls == [1]
        assert slept == []

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        slept, sleep = _recorder()

        async def _fn(attempt):
            if attempt < 3:
                raise PanelError(f"try {attempt}")
            return attempt

        policy = progressive(4, [1, 3, 5], retry_on=(PanelError,), sleep=sleep)
        assert await policy.run(_fn) == 3
        assert slept == [1.0, 3.0]

    @pytest.mark.asyncio
    async def test_exhaustion_keeps_last_error(self):
        slept, sleep = _recorder()

        async def _fn(attempt):
            raise PanelError(f"failure {attempt}")

        policy = progressive(3, [1, 3, 5], retry_on=(PanelError,), sleep=sleep)
        with pytest.raises(RetryExhaustedError) as info:
            await policy.run(_fn, operation="delete package basic")
        err = info.value
        assert err.attempts == 3
        assert err.message == "failure 3"
        assert isinstance(err.last_error, PanelError)
        assert err.__cause__ is err.last_error
        assert slept == [1.0, 3.0]

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self):
        calls = []

        async def _fn(attempt):
            calls.append(attempt)
            raise KeyError("boom")

        _, sleep = _recorder()
        policy = RetryPolicy(max_attempts=3, retry_on=(PanelError,), sleep=sleep)
        with pytest.raises(KeyError):
            await policy.run(_fn)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_should_retry_predicate(self):
        calls = []

        async def _fn(attempt):
            calls.append(attempt)
            raise PanelError("permanent")

        _, sleep = _recorder()
        policy = RetryPolicy(
            max_attempts=3,
            retry_on=(PanelError,),
            should_retry=lambda exc: "permanent" not in str(exc),
            sleep=sleep,
        )
        with pytest.raises(PanelError):
            await policy.run(_fn)
        assert calls == [1]
