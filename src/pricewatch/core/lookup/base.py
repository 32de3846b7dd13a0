"""
Product lookup base class.

A lookup answers "what does this store sell for this product?" one
attempt at a time. Any exception raised by an attempt is a transient
failure; retrying is the caller's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pricewatch.core.jobs.models import Product, ScrapingResult, Store


class ProductLookup(ABC):
    """Abstract base class for (store, product) lookups.

    A lookup is opened once per job before the first task and closed once
    after the last one, whatever the outcome.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Lookup identifier."""

    async def open(self) -> None:
        """Acquire per-job resources.

        Raises:
            Exception: Any failure here fails the whole job
        """

    @abstractmethod
    async def attempt_lookup(self, store: Store, product: Product) -> ScrapingResult:
        """Perform a single lookup attempt.

        Returns:
            Result echoing the store and product identity

        Raises:
            Exception: On a transient failure
        """

    async def close(self) -> None:
        """Release per-job resources."""

    async def __aenter__(self) -> "ProductLookup":
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
