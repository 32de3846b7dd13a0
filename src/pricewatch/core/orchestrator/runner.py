"""
Scrape runner orchestrator.

Coordinates one job: claim -> open lookup -> stores x products -> results.
Tasks run strictly one after another with pacing pauses between them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from pricewatch.core.config.models import ScrapingConfig
from pricewatch.core.fetch.retries import RetryConfig, SleepFunc
from pricewatch.core.fetch.throttling import Pacer, PacingPolicy
from pricewatch.core.jobs.errors import InvalidJobState, JobNotFound
from pricewatch.core.jobs.events import ProgressPublisher
from pricewatch.core.jobs.models import Job, JobStatus, ProgressEvent, ScrapingResult
from pricewatch.core.logging import get_contextual_logger
from pricewatch.core.lookup.base import ProductLookup
from pricewatch.persistence.job_store import JobStore

from .tasks import TaskRunner, describe_error

logger = logging.getLogger(__name__)

LookupFactory = Callable[[], ProductLookup]
PacerFactory = Callable[[], Pacer]

CANCELLED_MESSAGE = "Job cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _completed_message(job: Job, results: list[ScrapingResult]) -> str:
    return f"Completed! Scraped {len(results)} results from {len(job.stores)} stores."


def _failed_message(error: str) -> str:
    return f"Scraping failed: {error}"


def final_event(job: Job) -> ProgressEvent:
    """Rebuild the terminal event of a finished job from its stored state.

    Raises:
        InvalidJobState: If the job has not finished
    """
    results = list(job.results or [])

    if job.status == JobStatus.COMPLETED:
        return ProgressEvent(
            job_id=job.job_id,
            status=JobStatus.COMPLETED,
            percent=100,
            message=_completed_message(job, results),
            results=tuple(results),
        )

    if job.status == JobStatus.FAILED:
        error = job.error or "Unknown error"
        percent = (len(results) * 100) // job.total_tasks if job.total_tasks else 0
        return ProgressEvent(
            job_id=job.job_id,
            status=JobStatus.FAILED,
            percent=percent,
            message=_failed_message(error),
            error=error,
        )

    raise InvalidJobState(job.job_id, job.status, f"Job {job.job_id} has not finished")


@dataclass
class RunStats:
    """Statistics for a job run."""

    job_id: str
    tasks_total: int = 0
    tasks_succeeded: int = 0
    tasks_failed: int = 0
    retries: int = 0

    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    errors: list[str] = field(default_factory=list)
    pacing: dict[str, Any] = field(default_factory=dict)

    @property
    def tasks_completed(self) -> int:
        return self.tasks_succeeded + self.tasks_failed

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "job_id": self.job_id,
            "tasks_total": self.tasks_total,
            "tasks_succeeded": self.tasks_succeeded,
            "tasks_failed": self.tasks_failed,
            "tasks_completed": self.tasks_completed,
            "retries": self.retries,
            "errors_count": len(self.errors),
            "duration_seconds": self.duration_seconds,
            "pacing": self.pacing,
        }


class ScrapeRunner:
    """Drives jobs from PROCESSING to COMPLETED or FAILED.

    Coordinates:
    - The start guard (only UPLOADED jobs may start)
    - Lookup lifecycle, one lookup per job
    - Task order, pacing and retries
    - Progress events and the final job state
    """

    def __init__(
        self,
        store: JobStore,
        publisher: ProgressPublisher,
        lookup_factory: LookupFactory,
        config: ScrapingConfig | None = None,
        *,
        pacer_factory: PacerFactory | None = None,
        retry_sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the scrape runner.

        Args:
            store: Job store holding job state
            publisher: Progress publisher
            lookup_factory: Creates a fresh, unopened lookup per job
            config: Pacing, timeout and retry settings
            pacer_factory: Creates the pacer of a job (default: from config)
            retry_sleep: Coroutine used for retry backoff
        """
        self.store = store
        self.publisher = publisher
        self.lookup_factory = lookup_factory
        self.config = config or ScrapingConfig()
        self.pacer_factory = pacer_factory or self._default_pacer
        self.retry_sleep = retry_sleep

    def _default_pacer(self) -> Pacer:
        return Pacer(PacingPolicy.from_scraping_config(self.config))

    # =========================================================================
    # Start guard
    # =========================================================================

    def claim(self, job_id: str) -> Job:
        """Move an UPLOADED job to PROCESSING.

        Runs without suspending, so two concurrent starts cannot both
        succeed.

        Raises:
            JobNotFound: If the job does not exist
            InvalidJobState: If the job is not UPLOADED
        """
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFound(job_id)

        if job.status != JobStatus.UPLOADED:
            raise InvalidJobState(job_id, job.status)

        if not self.store.update_status(job_id, JobStatus.PROCESSING, expected={JobStatus.UPLOADED}):
            current = self.store.get(job_id)
            raise InvalidJobState(job_id, current.status if current else job.status)

        return job

    async def run(self, job_id: str) -> RunStats:
        """Claim and execute a job."""
        self.claim(job_id)
        return await self.execute(job_id)

    # =========================================================================
    # Execution
    # =========================================================================

    def _emit(
        self,
        job_id: str,
        status: JobStatus,
        percent: int,
        message: str,
        **values: Any,
    ) -> None:
        self.publisher.publish(
            job_id,
            ProgressEvent(
                job_id=job_id,
                status=status,
                percent=percent,
                message=message,
                **values,
            ),
        )

    async def execute(self, job_id: str) -> RunStats:
        """Execute a claimed job.

        Returns:
            RunStats with execution statistics

        Raises:
            JobNotFound: If the job does not exist
            InvalidJobState: If the job was not claimed
            Exception: Any job-fatal error, after the job is marked FAILED
        """
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        if job.status != JobStatus.PROCESSING:
            raise InvalidJobState(job_id, job.status, f"Job {job_id} must be claimed before it runs")

        log = get_contextual_logger("orchestrator", job_id=job_id)
        stats = RunStats(job_id=job_id, tasks_total=job.total_tasks)
        results: list[ScrapingResult] = []
        percent = 0
        lookup: ProductLookup | None = None
        pacer = self.pacer_factory()

        log.info(
            f"Starting job with {len(job.stores)} stores and {len(job.products)} products"
        )

        try:
            if job.total_tasks == 0:
                self._complete(job, results, stats)
                return stats

            self._emit(job_id, JobStatus.PROCESSING, 0, "Initializing scraper...")

            lookup = self.lookup_factory()
            await lookup.open()

            tasks = TaskRunner(
                lookup,
                RetryConfig.from_scraping_config(self.config),
                timeout=self.config.per_task_timeout,
                sleep=self.retry_sleep,
                job_id=job_id,
            )

            for store_index, store in enumerate(job.stores):
                store_log = log.with_context(store=store.name)
                store_log.info(f"Scraping store {store_index + 1}/{len(job.stores)}: {store.name}")
                self._emit(
                    job_id,
                    JobStatus.PROCESSING,
                    percent,
                    f"Scraping {store.name}",
                    current_store=store.name,
                )

                for product_index, product in enumerate(job.products):
                    outcome = await tasks.run(store, product)
                    results.append(outcome.result)

                    stats.retries += outcome.retries
                    if outcome.succeeded:
                        stats.tasks_succeeded += 1
                    else:
                        stats.tasks_failed += 1
                        stats.errors.append(
                            f"{product.product_id} @ {store.name}: {outcome.error}"
                        )

                    percent = (len(results) * 100) // job.total_tasks
                    self._emit(
                        job_id,
                        JobStatus.PROCESSING,
                        percent,
                        f"Scraped {product.name} at {store.name}",
                        current_store=store.name,
                        current_product=product.name,
                    )

                    if product_index < len(job.products) - 1:
                        await pacer.between_products()

                if store_index < len(job.stores) - 1:
                    await pacer.between_stores()

            self._complete(job, results, stats)

        except asyncio.CancelledError:
            log.warning("Job cancelled")
            self._fail(job_id, CANCELLED_MESSAGE, results, percent, stats)
            raise

        except Exception as e:
            message = describe_error(e)
            log.exception(f"Job failed: {message}")
            self._fail(job_id, message, results, percent, stats)
            raise

        finally:
            stats.finished_at = _utcnow()
            stats.pacing = pacer.stats().to_dict()

            if lookup is not None:
                try:
                    await lookup.close()
                except Exception:
                    log.exception(f"Failed to close lookup {lookup.name}")

        return stats

    def abort(self, job_id: str, message: str = CANCELLED_MESSAGE) -> None:
        """Mark a claimed job FAILED when its run never got to start."""
        job = self.store.get(job_id)
        if job is None or job.status != JobStatus.PROCESSING:
            return
        logger.warning(f"Aborting job: {message}", extra={"job_id": job_id})
        self._fail(job_id, message, [], 0, RunStats(job_id=job_id))

    def _complete(self, job: Job, results: list[ScrapingResult], stats: RunStats) -> None:
        self.store.set_results(job.job_id, results)
        self.store.update_status(job.job_id, JobStatus.COMPLETED)

        logger.info(
            f"Job completed: {len(results)} results, {stats.tasks_failed} failed tasks",
            extra={"job_id": job.job_id},
        )
        self._emit(
            job.job_id,
            JobStatus.COMPLETED,
            100,
            _completed_message(job, results),
            results=tuple(results),
        )

    def _fail(
        self,
        job_id: str,
        message: str,
        results: list[ScrapingResult],
        percent: int,
        stats: RunStats,
    ) -> None:
        stats.errors.append(message)

        job = self.store.get(job_id)
        if job is not None and job.results is None:
            self.store.set_results(job_id, results)
        self.store.update_status(job_id, JobStatus.FAILED, message)

        self._emit(
            job_id,
            JobStatus.FAILED,
            percent,
            _failed_message(message),
            error=message,
        )
