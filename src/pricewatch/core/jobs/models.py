"""
Job data structures.

Stores and products are immutable once attached to a job. Results are
recorded per (store, product) pair whether the lookup succeeded or not.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence


class JobStatus(str, Enum):
    """Job lifecycle states.

    UPLOADED -> PROCESSING -> COMPLETED | FAILED
    """

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True)
class Store:
    """A store to survey."""

    name: str
    website_url: str


@dataclass(frozen=True)
class Product:
    """A product to look up at every store."""

    product_id: str
    name: str
    description: str
    brand: str

    @property
    def search_text(self) -> str:
        """Text used to search for and match this product."""
        return f"{self.brand} {self.name}".strip()


@dataclass
class ScrapingResult:
    """Outcome of one (store, product) task."""

    product_id: str
    product_name: str
    store_name: str
    brand: str | None = None
    found_product_name: str | None = None
    price: float | None = None
    currency: str | None = None
    availability: str | None = None
    is_exact_match: bool = False
    replacement_description: str | None = None
    error_message: str | None = None
    attempts: int = 1

    @property
    def failed(self) -> bool:
        """Whether the task failed outright."""
        return self.error_message is not None

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the result within a job."""
        return (self.product_id, self.store_name)

    @classmethod
    def for_pair(cls, store: Store, product: Product, **values: Any) -> "ScrapingResult":
        """Build a result echoing the pair's identity fields."""
        return cls(
            product_id=product.product_id,
            product_name=product.name,
            brand=product.brand,
            store_name=store.name,
            **values,
        )

    @classmethod
    def failure(
        cls,
        store: Store,
        product: Product,
        error: str,
        attempts: int = 1,
    ) -> "ScrapingResult":
        """Synthesized entry for a task whose retries were exhausted."""
        return cls.for_pair(
            store,
            product,
            is_exact_match=False,
            error_message=error,
            attempts=attempts,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "brand": self.brand,
            "store_name": self.store_name,
            "found_product_name": self.found_product_name,
            "price": self.price,
            "currency": self.currency,
            "availability": self.availability,
            "is_exact_match": self.is_exact_match,
            "replacement_description": self.replacement_description,
            "error_message": self.error_message,
            "attempts": self.attempts,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """A price survey over a fixed store set and product set."""

    job_id: str
    stores: tuple[Store, ...]
    products: tuple[Product, ...]
    status: JobStatus = JobStatus.UPLOADED
    created_at: datetime = field(default_factory=_utcnow)
    error: str | None = None
    results: list[ScrapingResult] | None = None

    @classmethod
    def new(cls, stores: Sequence[Store], products: Sequence[Product]) -> "Job":
        """Create an UPLOADED job with a fresh identifier."""
        return cls(
            job_id=str(uuid.uuid4()),
            stores=tuple(stores),
            products=tuple(products),
        )

    @property
    def total_tasks(self) -> int:
        return len(self.stores) * len(self.products)

    def snapshot(self) -> "JobSnapshot":
        return JobSnapshot(
            job_id=self.job_id,
            status=self.status,
            created_at=self.created_at,
            store_count=len(self.stores),
            product_count=len(self.products),
            result_count=len(self.results or []),
            error=self.error,
        )


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time job status."""

    job_id: str
    status: JobStatus
    created_at: datetime
    store_count: int
    product_count: int
    result_count: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "stores": self.store_count,
            "products": self.product_count,
            "results_count": self.result_count,
            "error": self.error,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """Live progress notification for a job."""

    job_id: str
    status: JobStatus
    percent: int
    message: str
    current_store: str | None = None
    current_product: str | None = None
    results: tuple[ScrapingResult, ...] | None = None
    error: str | None = None
    emitted_at: datetime = field(default_factory=_utcnow)

    @property
    def terminal(self) -> bool:
        """Whether this is the last event of the job."""
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "job_id": self.job_id,
            "status": self.status.value,
            "progress": self.percent,
            "message": self.message,
        }
        if self.current_store is not None:
            data["current_store"] = self.current_store
        if self.current_product is not None:
            data["current_product"] = self.current_product
        if self.results is not None:
            data["results"] = [result.to_dict() for result in self.results]
        if self.error is not None:
            data["error"] = self.error
        return data
