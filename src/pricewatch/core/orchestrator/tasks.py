"""
Task runner - one (store, product) lookup with timeout and retries.

A task never fails the job: once retries are exhausted the failure is
recorded as a result entry instead.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass

from pricewatch.core.fetch.retries import RetryConfig, SleepFunc, retry_async
from pricewatch.core.jobs.models import Product, ScrapingResult, Store
from pricewatch.core.lookup.base import ProductLookup

logger = logging.getLogger(__name__)


class TaskTimeout(Exception):
    """A lookup attempt exceeded the per-task timeout."""


@dataclass
class TaskOutcome:
    """Result of running one task."""

    result: ScrapingResult
    attempts: int
    error: str | None = None

    @property
    def retries(self) -> int:
        return self.attempts - 1

    @property
    def succeeded(self) -> bool:
        return self.error is None


def describe_error(error: BaseException) -> str:
    """Readable message for an exception, falling back to its type."""
    message = str(error).strip()
    return message or type(error).__name__


class TaskRunner:
    """Runs lookups for a single job.

    Usage:
        runner = TaskRunner(lookup, RetryConfig(max_attempts=3), timeout=30.0)
        outcome = await runner.run(store, product)
    """

    def __init__(
        self,
        lookup: ProductLookup,
        retry_config: RetryConfig | None = None,
        *,
        timeout: float | None = None,
        sleep: SleepFunc = asyncio.sleep,
        job_id: str | None = None,
    ):
        """Initialize the task runner.

        Args:
            lookup: Opened lookup used for every attempt
            retry_config: Retry policy (the on_retry callback is replaced per task)
            timeout: Per-attempt timeout in seconds (None disables it)
            sleep: Coroutine used for retry backoff
            job_id: Job identifier for log context
        """
        self.lookup = lookup
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.sleep = sleep
        self.job_id = job_id

    async def _attempt(self, store: Store, product: Product) -> ScrapingResult:
        if self.timeout is None:
            return await self.lookup.attempt_lookup(store, product)
        try:
            return await asyncio.wait_for(
                self.lookup.attempt_lookup(store, product),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise TaskTimeout(
                f"Lookup of {product.product_id} at {store.name} timed out after {self.timeout:g}s"
            ) from e

    async def run(self, store: Store, product: Product) -> TaskOutcome:
        """Run one task to completion.

        Returns:
            TaskOutcome whose result always carries this pair's identity
        """
        failed_attempts = 0
        context = {
            "job_id": self.job_id,
            "store": store.name,
            "product": product.product_id,
        }

        def on_retry(error: BaseException, attempt: int) -> None:
            nonlocal failed_attempts
            failed_attempts = attempt
            logger.info(
                f"Retrying {product.product_id} at {store.name} after attempt {attempt}: "
                f"{describe_error(error)}",
                extra={**context, "attempt": attempt},
            )

        config = self.retry_config.with_on_retry(on_retry)

        try:
            result = await retry_async(
                self._attempt,
                store,
                product,
                config=config,
                sleep=self.sleep,
            )
        except Exception as e:
            message = describe_error(e)
            attempts = config.max_attempts
            logger.error(
                f"Giving up on {product.product_id} at {store.name} "
                f"after {attempts} attempts: {message}",
                extra={**context, "attempt": attempts},
            )
            return TaskOutcome(
                result=ScrapingResult.failure(store, product, message, attempts=attempts),
                attempts=attempts,
                error=message,
            )

        attempts = failed_attempts + 1
        result = dataclasses.replace(
            result,
            product_id=product.product_id,
            product_name=product.name,
            brand=product.brand,
            store_name=store.name,
            attempts=attempts,
        )
        return TaskOutcome(result=result, attempts=attempts)
