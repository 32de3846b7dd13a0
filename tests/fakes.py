"""Fake collaborators shared by the test modules."""

from __future__ import annotations

import asyncio

from pricewatch.core.jobs.models import Product, ScrapingResult, Store
from pricewatch.core.lookup.base import ProductLookup


class RecordingSleep:
    """Stands in for asyncio.sleep and records every delay."""

    def __init__(self, fail_on: int | None = None):
        self.calls: list[float] = []
        self.fail_on = fail_on

    async def sleep(self, delay: float) -> None:
        self.calls.append(delay)
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise RuntimeError("pause interrupted")


class FakeLookup(ProductLookup):
    """Scripted lookup.

    ``script`` maps (store name, product id) to a list of exceptions to
    raise on successive attempts before succeeding.
    """

    def __init__(
        self,
        script: dict[tuple[str, str], list[Exception]] | None = None,
        *,
        open_error: Exception | None = None,
        hang_on: set[tuple[str, str]] | None = None,
        wrong_identity: bool = False,
    ):
        self.script = {key: list(errors) for key, errors in (script or {}).items()}
        self.open_error = open_error
        self.hang_on = hang_on or set()
        self.wrong_identity = wrong_identity
        self.calls: list[tuple[str, str]] = []
        self.opened = 0
        self.closed = 0
        self.entered = asyncio.Event()

    @property
    def name(self) -> str:
        return "fake"

    async def open(self) -> None:
        self.opened += 1
        if self.open_error is not None:
            raise self.open_error

    async def close(self) -> None:
        self.closed += 1

    async def attempt_lookup(self, store: Store, product: Product) -> ScrapingResult:
        key = (store.name, product.product_id)
        self.calls.append(key)

        if key in self.hang_on:
            self.entered.set()
            await asyncio.Event().wait()

        errors = self.script.get(key)
        if errors:
            raise errors.pop(0)

        if self.wrong_identity:
            return ScrapingResult(
                product_id="other",
                product_name="Other",
                store_name="Elsewhere",
                found_product_name=product.name,
                price=12.5,
                currency="NZD",
                is_exact_match=True,
            )

        return ScrapingResult.for_pair(
            store,
            product,
            found_product_name=f"{product.brand} {product.name}",
            price=12.5,
            currency="NZD",
            availability="In Stock",
            is_exact_match=True,
        )


def make_stores(count: int) -> list[Store]:
    return [Store(name=f"Store {i}", website_url=f"https://store{i}.example") for i in range(1, count + 1)]


def make_products(count: int) -> list[Product]:
    return [
        Product(
            product_id=f"P{i}",
            name=f"Widget {i}",
            description=f"A widget, size {i}",
            brand="Acme",
        )
        for i in range(1, count + 1)
    ]
