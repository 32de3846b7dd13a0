"""Tests for the backoff/retry executor."""

from __future__ import annotations

import asyncio

import pytest

from pricewatch.core.config.models import ScrapingConfig
from pricewatch.core.fetch.retries import RetryConfig, retry_async

from fakes import RecordingSleep


class Flaky:
    """Fails a fixed number of times, then returns "ok"."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ValueError(f"failure {self.calls}")
        return "ok"


def test_first_attempt_success_does_not_sleep():
    sleep = RecordingSleep()
    op = Flaky(0)

    result = asyncio.run(retry_async(op, config=RetryConfig(max_attempts=3), sleep=sleep.sleep))

    assert result == "ok"
    assert op.calls == 1
    assert sleep.calls == []


def test_on_retry_called_once_per_failure_before_success():
    sleep = RecordingSleep()
    retries: list[tuple[str, int]] = []
    config = RetryConfig(
        max_attempts=3,
        initial_delay=1.0,
        backoff_multiplier=2.0,
        on_retry=lambda error, attempt: retries.append((str(error), attempt)),
    )
    op = Flaky(2)

    result = asyncio.run(retry_async(op, config=config, sleep=sleep.sleep))

    assert result == "ok"
    assert op.calls == 3
    assert retries == [("failure 1", 1), ("failure 2", 2)]
    assert sleep.calls == [1.0, 2.0]


def test_exhausted_retries_reraise_last_error():
    sleep = RecordingSleep()
    retries: list[int] = []
    config = RetryConfig(
        max_attempts=3,
        initial_delay=1.0,
        backoff_multiplier=2.0,
        on_retry=lambda error, attempt: retries.append(attempt),
    )
    op = Flaky(10)

    with pytest.raises(ValueError, match="failure 3"):
        asyncio.run(retry_async(op, config=config, sleep=sleep.sleep))

    assert op.calls == 3
    assert retries == [1, 2]
    assert sleep.calls == [1.0, 2.0]


def test_single_attempt_never_sleeps():
    sleep = RecordingSleep()
    op = Flaky(1)

    with pytest.raises(ValueError):
        asyncio.run(retry_async(op, config=RetryConfig(max_attempts=1), sleep=sleep.sleep))

    assert op.calls == 1
    assert sleep.calls == []


def test_delay_is_capped_at_max_delay():
    sleep = RecordingSleep()
    config = RetryConfig(max_attempts=5, initial_delay=1.0, backoff_multiplier=10.0, max_delay=5.0)

    with pytest.raises(ValueError):
        asyncio.run(retry_async(Flaky(10), config=config, sleep=sleep.sleep))

    assert sleep.calls == [1.0, 5.0, 5.0, 5.0]


def test_arguments_are_passed_through():
    async def add(a: int, b: int = 0) -> int:
        return a + b

    assert asyncio.run(retry_async(add, 2, b=3, sleep=RecordingSleep().sleep)) == 5


def test_cancellation_is_not_retried():
    calls = []

    async def cancelled() -> None:
        calls.append(1)
        raise asyncio.CancelledError()

    async def main() -> None:
        with pytest.raises(asyncio.CancelledError):
            await retry_async(cancelled, config=RetryConfig(max_attempts=3), sleep=RecordingSleep().sleep)

    asyncio.run(main())
    assert calls == [1]


class TestRetryConfig:
    def test_delay_for_follows_exponential_schedule(self):
        config = RetryConfig(initial_delay=0.5, backoff_multiplier=3.0, max_delay=4.0)

        assert [config.delay_for(n) for n in (1, 2, 3)] == [0.5, 1.5, 4.0]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"initial_delay": -1.0},
            {"backoff_multiplier": 0.5},
        ],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)

    def test_from_scraping_config_converts_milliseconds(self):
        config = RetryConfig.from_scraping_config(
            ScrapingConfig(
                max_retries=4,
                retry_initial_delay_ms=500,
                retry_backoff_multiplier=3.0,
                retry_max_delay_ms=8000,
            )
        )

        assert config.max_attempts == 4
        assert config.initial_delay == 0.5
        assert config.backoff_multiplier == 3.0
        assert config.max_delay == 8.0
        assert config.jitter is False

    def test_from_scraping_config_passes_jitter(self):
        config = RetryConfig.from_scraping_config(ScrapingConfig(retry_jitter=True))

        assert config.jitter is True

    def test_with_on_retry_keeps_policy(self):
        def callback(error, attempt):
            return None

        base = RetryConfig(max_attempts=5, initial_delay=2.0)
        copy = base.with_on_retry(callback)

        assert copy.on_retry is callback
        assert base.on_retry is None
        assert (copy.max_attempts, copy.initial_delay) == (5, 2.0)
