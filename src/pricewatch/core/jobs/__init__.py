"""Jobs - data model, lifecycle errors, progress events."""

from .errors import DuplicateJob, InvalidJobState, JobError, JobNotFound
from .events import ProgressPublisher, Subscription
from .models import Job, JobSnapshot, JobStatus, Product, ProgressEvent, ScrapingResult, Store

__all__ = [
    "DuplicateJob",
    "InvalidJobState",
    "Job",
    "JobError",
    "JobNotFound",
    "JobSnapshot",
    "JobStatus",
    "Product",
    "ProgressEvent",
    "ProgressPublisher",
    "ScrapingResult",
    "Store",
    "Subscription",
]
