"""
Tests for retry with backoff and request batching
"""

import asyncio

import pytest

from feedback_quality_engine.utils.resilience import (
    NonRetryableError, RetryConfig, batch_requests, calculate_delay,
    retry_with_backoff, retryable
)


class Flaky:
    """Fails a fixed number of times, then succeeds."""

    def __init__(self, failures, error=RuntimeError):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return "ok"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    def test_succeeds_after_transient_failures(self):
        fn = Flaky(failures=2)
        sleep = RecordingSleep()

        result = asyncio.run(retry_with_backoff(fn, max_retries=3, initial_delay=0.3, sleep=sleep))

        assert result == "ok"
        assert fn.calls == 3
        assert len(sleep.delays) == 2

    def test_raises_last_error_when_attempts_exhausted(self):
        fn = Flaky(failures=5)
        sleep = RecordingSleep()

        with pytest.raises(RuntimeError, match="failure 3"):
            asyncio.run(retry_with_backoff(fn, max_retries=3, sleep=sleep))

        assert fn.calls == 3
        # No sleep after the final attempt
        assert len(sleep.delays) == 2

    def test_single_attempt_does_not_retry(self):
        fn = Flaky(failures=1)
        sleep = RecordingSleep()

        with pytest.raises(RuntimeError):
            asyncio.run(retry_with_backoff(fn, max_retries=1, sleep=sleep))

        assert fn.calls == 1
        assert sleep.delays == []

    def test_non_retryable_error_is_raised_immediately(self):
        fn = Flaky(failures=3, error=NonRetryableError)

        with pytest.raises(NonRetryableError):
            asyncio.run(retry_with_backoff(fn, max_retries=3, sleep=RecordingSleep()))

        assert fn.calls == 1

    def test_unlisted_exceptions_are_not_retried(self):
        fn = Flaky(failures=3, error=KeyError)

        with pytest.raises(KeyError):
            asyncio.run(retry_with_backoff(fn, max_retries=3, exceptions=(RuntimeError,),
                                           sleep=RecordingSleep()))

        assert fn.calls == 1

    def test_invalid_max_retries(self):
        with pytest.raises(ValueError):
            asyncio.run(retry_with_backoff(Flaky(failures=0), max_retries=0))

    def test_delays_grow_exponentially(self):
        fn = Flaky(failures=3)
        sleep = RecordingSleep()

        asyncio.run(retry_with_backoff(fn, max_retries=4, initial_delay=1.0, max_delay=100.0, sleep=sleep))

        assert 0.9 <= sleep.delays[0] <= 1.1
        assert 1.8 <= sleep.delays[1] <= 2.2
        assert 3.6 <= sleep.delays[2] <= 4.4

    def test_real_sleep_with_tiny_delay(self):
        fn = Flaky(failures=1)
        assert asyncio.run(retry_with_backoff(fn, max_retries=2, initial_delay=0.001)) == "ok"


class TestCalculateDelay:
    """Tests for the backoff formula."""

    def test_jitter_bounds(self):
        assert calculate_delay(0, 0.3, 5.0, rand=lambda: 0.0) == pytest.approx(0.27)
        assert calculate_delay(0, 0.3, 5.0, rand=lambda: 1.0) == pytest.approx(0.33)

    def test_exponential_growth(self):
        assert calculate_delay(2, 0.3, 5.0, rand=lambda: 0.5) == pytest.approx(1.2)

    def test_capped_at_max_delay(self):
        assert calculate_delay(10, 0.3, 5.0, rand=lambda: 0.5) == 5.0


class TestRetryableDecorator:
    """Tests for the retryable decorator."""

    def test_retries_decorated_coroutine(self):
        calls = []

        @retryable(RetryConfig(max_retries=3, initial_delay=0.001, max_delay=0.001))
        async def load(value):
            calls.append(value)
            if len(calls) < 2:
                raise RuntimeError("transient")
            return value * 2

        assert asyncio.run(load(21)) == 42
        assert calls == [21, 21]
        assert load.__name__ == "load"


class TestBatchRequests:
    """Tests for batch_requests."""

    def test_preserves_order(self):
        def make(i):
            async def request():
                await asyncio.sleep(0.001 * (5 - i))
                return i
            return request

        results = asyncio.run(batch_requests([make(i) for i in range(5)], batch_size=2))
        assert results == [0, 1, 2, 3, 4]

    def test_batches_run_sequentially(self):
        active = []
        peak = []

        def make(i):
            async def request():
                active.append(i)
                peak.append(len(active))
                await asyncio.sleep(0)
                active.remove(i)
                return i
            return request

        asyncio.run(batch_requests([make(i) for i in range(7)], batch_size=3))
        assert max(peak) <= 3

    def test_empty_input(self):
        assert asyncio.run(batch_requests([])) == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            asyncio.run(batch_requests([], batch_size=0))


def test_public_names_resolve():
    from feedback_quality_engine import utils

    assert all(hasattr(utils, name) for name in utils.__all__)
    assert 'NonRetryableError' in utils.__all__
    assert 'RetryableError' not in utils.__all__
