"""Job persistence layer (in-memory)."""

from .job_store import InMemoryJobStore, JobStore

__all__ = [
    "InMemoryJobStore",
    "JobStore",
]
