"""
Job lifecycle errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import JobStatus


class JobError(Exception):
    """Base exception for job errors."""

    def __init__(self, message: str, job_id: str | None = None):
        super().__init__(message)
        self.job_id = job_id


class JobNotFound(JobError):
    """No job exists with the requested identifier."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found", job_id=job_id)


class InvalidJobState(JobError):
    """The job's status does not allow the requested operation."""

    def __init__(self, job_id: str, status: JobStatus, message: str | None = None):
        super().__init__(
            message or f"Job {job_id} is {status.value}",
            job_id=job_id,
        )
        self.status = status


class DuplicateJob(JobError):
    """A job with this identifier already exists."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} already exists", job_id=job_id)
