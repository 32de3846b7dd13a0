"""
Retry utilities with tenacity.

Provides the backoff/retry executor used around every lookup attempt.
Every exception is treated as retryable here; callers decide what an
exhausted retry means.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

if TYPE_CHECKING:
    from pricewatch.core.config.models import ScrapingConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[BaseException, int], None]
SleepFunc = Callable[[float], Awaitable[None]]


# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_MULTIPLIER = 2.0


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        backoff_multiplier: float = DEFAULT_MULTIPLIER,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: bool = False,
        on_retry: OnRetry | None = None,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Total attempts before the last error is raised
            initial_delay: Delay before the first retry, in seconds
            backoff_multiplier: Factor applied to the delay after each retry
            max_delay: Cap for a single delay, in seconds
            jitter: Randomize retry delays (full jitter)
            on_retry: Called with (error, attempt_number) before each retry
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if initial_delay < 0 or max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.on_retry = on_retry

    @classmethod
    def from_scraping_config(
        cls,
        config: ScrapingConfig,
        on_retry: OnRetry | None = None,
    ) -> "RetryConfig":
        """Build the per-task retry policy from scraping settings."""
        return cls(
            max_attempts=config.max_retries,
            initial_delay=config.retry_initial_delay_ms / 1000.0,
            backoff_multiplier=config.retry_backoff_multiplier,
            max_delay=config.retry_max_delay_ms / 1000.0,
            jitter=config.retry_jitter,
            on_retry=on_retry,
        )

    def with_on_retry(self, on_retry: OnRetry | None) -> "RetryConfig":
        """Copy of this policy with a different retry callback."""
        return RetryConfig(
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            backoff_multiplier=self.backoff_multiplier,
            max_delay=self.max_delay,
            jitter=self.jitter,
            on_retry=on_retry,
        )

    def delay_for(self, attempt_number: int) -> float:
        """Unjittered delay slept after the given failed attempt."""
        delay = self.initial_delay * self.backoff_multiplier ** (attempt_number - 1)
        return min(delay, self.max_delay)


def _wait_strategy(config: RetryConfig):
    if config.jitter:
        return wait_random_exponential(
            multiplier=config.initial_delay,
            exp_base=config.backoff_multiplier,
            max=config.max_delay,
        )
    return wait_exponential(
        multiplier=config.initial_delay,
        exp_base=config.backoff_multiplier,
        max=config.max_delay,
    )


def _before_sleep(config: RetryConfig) -> Callable[[RetryCallState], None]:
    def hook(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Attempt %d/%d failed: %s. Retrying in %.2fs",
            retry_state.attempt_number,
            config.max_attempts,
            error,
            delay,
        )
        if config.on_retry is not None and error is not None:
            config.on_retry(error, retry_state.attempt_number)

    return hook


async def retry_async(
    coro_func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    sleep: SleepFunc = asyncio.sleep,
    **kwargs: Any,
) -> T:
    """Execute an async function with retry logic.

    Args:
        coro_func: Async function to call
        *args: Positional arguments
        config: Retry configuration
        sleep: Coroutine used to wait between attempts
        **kwargs: Keyword arguments

    Returns:
        Function result

    Raises:
        Exception: The last error once all attempts fail
    """
    if config is None:
        config = RetryConfig()

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=_wait_strategy(config),
        retry=retry_if_exception_type(Exception),
        before_sleep=_before_sleep(config),
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            return await coro_func(*args, **kwargs)

    raise RuntimeError("retry loop exited without a result")  # pragma: no cover

