"""Orchestrator - job runs, task retries, control boundary."""

from .runner import RunStats, ScrapeRunner, final_event
from .service import JobService, JobStartAck
from .tasks import TaskOutcome, TaskRunner, TaskTimeout

__all__ = [
    "JobService",
    "JobStartAck",
    "RunStats",
    "ScrapeRunner",
    "TaskOutcome",
    "TaskRunner",
    "TaskTimeout",
    "final_event",
]
