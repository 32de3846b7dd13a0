"""
Job service - the control boundary for creating, starting and observing jobs.

Starting a job is fire-and-forget: the trigger returns as soon as the job
is claimed and its run is scheduled on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Sequence

from pricewatch.core.config.models import AppConfig
from pricewatch.core.fetch.retries import SleepFunc
from pricewatch.core.jobs.errors import InvalidJobState, JobNotFound
from pricewatch.core.jobs.events import ProgressListener, ProgressPublisher, Subscription
from pricewatch.core.jobs.models import Job, JobSnapshot, JobStatus, Product, ScrapingResult, Store
from pricewatch.core.lookup import create_lookup
from pricewatch.persistence.job_store import InMemoryJobStore, JobStore

from .runner import LookupFactory, PacerFactory, ScrapeRunner, final_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobStartAck:
    """Acknowledgement returned when a job starts."""

    job_id: str
    status: JobStatus
    message: str = "Scraping started"


class JobService:
    """Creates jobs and runs them in the background.

    Usage:
        service = JobService(config)
        job = service.create_job(stores, products)
        service.start(job.job_id)
        snapshot = await service.wait(job.job_id)
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: JobStore | None = None,
        publisher: ProgressPublisher | None = None,
        lookup_factory: LookupFactory | None = None,
        pacer_factory: PacerFactory | None = None,
        retry_sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the job service.

        Args:
            config: Application configuration
            store: Job store (default: in-memory)
            publisher: Progress publisher (default: new publisher)
            lookup_factory: Creates the lookup of a job (default: by lookup mode)
            pacer_factory: Creates the pacer of a job (default: from config)
            retry_sleep: Coroutine used for retry backoff
        """
        self.config = config or AppConfig()
        self.store = store or InMemoryJobStore()
        self.publisher = publisher or ProgressPublisher()
        self.runner = ScrapeRunner(
            self.store,
            self.publisher,
            lookup_factory or partial(create_lookup, self.config),
            self.config.scraping,
            pacer_factory=pacer_factory,
            retry_sleep=retry_sleep,
        )
        self._tasks: dict[str, asyncio.Task] = {}

    # =========================================================================
    # Job records
    # =========================================================================

    def create_job(self, stores: Sequence[Store], products: Sequence[Product]) -> Job:
        """Register a new UPLOADED job."""
        return self.store.create(Job.new(stores, products))

    def _require(self, job_id: str) -> Job:
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def get_status(self, job_id: str) -> JobSnapshot:
        """Get a point-in-time view of a job.

        Raises:
            JobNotFound: If the job does not exist
        """
        return self._require(job_id).snapshot()

    def get_results(self, job_id: str) -> list[ScrapingResult]:
        """Get the results of a completed job.

        Raises:
            JobNotFound: If the job does not exist
            InvalidJobState: If the job has not completed
        """
        job = self._require(job_id)
        if job.status != JobStatus.COMPLETED:
            raise InvalidJobState(
                job_id,
                job.status,
                f"Job {job_id} has no results while {job.status.value}",
            )
        return list(job.results or [])

    def list_jobs(self) -> list[JobSnapshot]:
        snapshots = []
        for job_id in self.store.list_ids():
            job = self.store.get(job_id)
            if job is not None:
                snapshots.append(job.snapshot())
        return snapshots

    def delete_job(self, job_id: str) -> bool:
        """Remove a job that is not running.

        Raises:
            InvalidJobState: If the job is still processing
        """
        job = self.store.get(job_id)
        if job is None:
            return False
        if job.status == JobStatus.PROCESSING:
            raise InvalidJobState(job_id, job.status, f"Cannot delete running job {job_id}")
        return self.store.delete(job_id)

    # =========================================================================
    # Running
    # =========================================================================

    @property
    def active_jobs(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def start(self, job_id: str) -> JobStartAck:
        """Start a job in the background.

        Must be called from a running event loop. The job is claimed before
        this returns; the scrape itself runs as a detached task.

        Raises:
            JobNotFound: If the job does not exist
            InvalidJobState: If the job is not UPLOADED
        """
        loop = asyncio.get_running_loop()
        self.runner.claim(job_id)

        task = loop.create_task(self.runner.execute(job_id), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(partial(self._on_done, job_id))

        active = self.active_jobs
        limit = self.config.scraping.max_concurrent_jobs
        if active > limit:
            logger.warning(
                f"{active} jobs running, above the configured {limit}",
                extra={"job_id": job_id},
            )

        logger.info("Job started", extra={"job_id": job_id})
        return JobStartAck(job_id=job_id, status=JobStatus.PROCESSING)

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

        if task.cancelled():
            logger.info("Job task cancelled", extra={"job_id": job_id})
            # Cancelled before its first step, so the run never recorded it
            self.runner.abort(job_id)
            return

        error = task.exception()
        if error is not None:
            logger.error(f"Job ended with error: {error}", extra={"job_id": job_id})
            return

        stats = task.result()
        logger.info(f"Job finished: {stats.to_dict()}", extra={"job_id": job_id})

    def cancel(self, job_id: str) -> bool:
        """Cancel a running job; it ends FAILED.

        Returns:
            True if a running job was asked to stop
        """
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        return task.cancel()

    async def wait(self, job_id: str) -> JobSnapshot:
        """Wait for a started job to finish.

        Job errors are not raised here; they are recorded on the job.
        """
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})
        return self.get_status(job_id)

    # =========================================================================
    # Observing
    # =========================================================================

    def subscribe(self, job_id: str, max_queue: int | None = None) -> Subscription:
        """Observe a job's progress events.

        A finished job yields only its terminal event.

        Raises:
            JobNotFound: If the job does not exist
        """
        job = self._require(job_id)
        subscription = self.publisher.subscribe(job_id, max_queue)
        if job.status.is_terminal:
            subscription.deliver(final_event(job))
            subscription.close()
        return subscription

    def add_listener(self, job_id: str, listener: ProgressListener) -> None:
        """Observe a job's progress with a synchronous callback.

        A finished job calls the listener once with its terminal event.

        Raises:
            JobNotFound: If the job does not exist
        """
        job = self._require(job_id)
        if job.status.is_terminal:
            listener(final_event(job))
            return
        self.publisher.add_listener(job_id, listener)

    def remove_listener(self, job_id: str, listener: ProgressListener) -> None:
        self.publisher.remove_listener(job_id, listener)
