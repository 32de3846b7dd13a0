"""
Job store - single source of truth for job lifecycle state.

Jobs live in process memory only; nothing survives a restart.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence

from pricewatch.core.jobs.errors import DuplicateJob, InvalidJobState
from pricewatch.core.jobs.models import Job, JobStatus, ScrapingResult

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Registry of job records keyed by job identifier."""

    @abstractmethod
    def create(self, job: Job) -> Job:
        """Insert a new job.

        Raises:
            DuplicateJob: If the identifier is already registered
        """

    @abstractmethod
    def get(self, job_id: str) -> Job | None:
        """Get a job, or None if unknown."""

    @abstractmethod
    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
        *,
        expected: Collection[JobStatus] | None = None,
    ) -> bool:
        """Set a job's status (and optionally its error message).

        With ``expected``, the update only happens if the current status is
        one of them, atomically.

        Returns:
            True if the status was changed, False otherwise
        """

    @abstractmethod
    def set_results(self, job_id: str, results: Sequence[ScrapingResult]) -> bool:
        """Attach the final result list of a job.

        Returns:
            False if the job does not exist

        Raises:
            InvalidJobState: If results were already attached
        """

    @abstractmethod
    def delete(self, job_id: str) -> bool:
        """Remove a job. Returns True if it existed."""

    @abstractmethod
    def list_ids(self) -> list[str]:
        """Get all job identifiers."""

    @abstractmethod
    def clear(self) -> int:
        """Remove all jobs. Returns how many were removed."""


class InMemoryJobStore(JobStore):
    """Dictionary-backed job store."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, job: Job) -> Job:
        with self._lock:
            if job.job_id in self._jobs:
                raise DuplicateJob(job.job_id)
            self._jobs[job.job_id] = job

        logger.info(
            "Job saved: %s with %d stores and %d products",
            job.job_id,
            len(job.stores),
            len(job.products),
            extra={"job_id": job.job_id},
        )
        return job

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            return self._jobs.get(job_id)

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
        *,
        expected: Collection[JobStatus] | None = None,
    ) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                changed = False
                previous = None
            elif expected is not None and job.status not in expected:
                return False
            else:
                previous = job.status
                job.status = status
                if error is not None:
                    job.error = error
                changed = True

        if not changed:
            logger.warning("Cannot update status of unknown job %s", job_id)
            return False

        logger.info(
            "Job %s status updated: %s -> %s",
            job_id,
            previous.value if previous else "?",
            status.value,
            extra={"job_id": job_id},
        )
        return True

    def set_results(self, job_id: str, results: Sequence[ScrapingResult]) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                if job.results is not None:
                    raise InvalidJobState(
                        job_id,
                        job.status,
                        f"Results for job {job_id} were already recorded",
                    )
                job.results = list(results)

        if job is None:
            logger.warning("Cannot attach results to unknown job %s", job_id)
            return False
        return True

    def delete(self, job_id: str) -> bool:
        with self._lock:
            deleted = self._jobs.pop(job_id, None) is not None
        if deleted:
            logger.info("Job deleted: %s", job_id)
        return deleted

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._jobs)

    def clear(self) -> int:
        with self._lock:
            count = len(self._jobs)
            self._jobs.clear()
        logger.info("Cleared %d jobs from storage", count)
        return count
