"""
Synthetic lookup for demos and degraded mode.

Produces plausible placeholder results without touching the network.
"""

from __future__ import annotations

import logging
import random

from pricewatch.core.jobs.models import Product, ScrapingResult, Store

from .base import ProductLookup

logger = logging.getLogger(__name__)


# (weight, scenario) pairs; weights add up to 1
SCENARIO_WEIGHTS = (
    (0.7, "found"),
    (0.2, "variant"),
    (0.1, "not_stocked"),
)

MIN_PRICE = 9.99
PRICE_SPREAD = 50.0


class SyntheticLookupError(Exception):
    """Injected transient failure."""


class SyntheticLookup(ProductLookup):
    """Weighted-random placeholder results.

    Scenarios:
    - found (70%): priced, in or low stock, usually an exact match
    - variant (20%): a different size or variant of the product
    - not_stocked (10%): no product, out of stock
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        *,
        failure_rate: float = 0.0,
        currency: str = "NZD",
    ):
        """Initialize the synthetic lookup.

        Args:
            rng: Random source (seed it for reproducible runs)
            failure_rate: Probability that an attempt raises (0.0 - 1.0)
            currency: Currency code of generated prices
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.rng = rng or random.Random()
        self.failure_rate = failure_rate
        self.currency = currency
        self.attempts = 0

    @property
    def name(self) -> str:
        return "synthetic"

    def _price(self) -> float:
        return round(MIN_PRICE + self.rng.random() * PRICE_SPREAD, 2)

    def _pick_scenario(self) -> str:
        roll = self.rng.random()
        cumulative = 0.0
        for weight, scenario in SCENARIO_WEIGHTS:
            cumulative += weight
            if roll <= cumulative:
                return scenario
        return SCENARIO_WEIGHTS[0][1]

    async def attempt_lookup(self, store: Store, product: Product) -> ScrapingResult:
        self.attempts += 1

        if self.failure_rate and self.rng.random() < self.failure_rate:
            raise SyntheticLookupError(
                f"Simulated failure looking up {product.product_id} at {store.name}"
            )

        scenario = self._pick_scenario()

        if scenario == "found":
            return ScrapingResult.for_pair(
                store,
                product,
                found_product_name=f"{product.name} - {product.brand}",
                price=self._price(),
                currency=self.currency,
                availability="In Stock" if self.rng.random() > 0.2 else "Low Stock",
                is_exact_match=self.rng.random() > 0.3,
            )

        if scenario == "variant":
            return ScrapingResult.for_pair(
                store,
                product,
                found_product_name=f"{product.name} (Alternative Size)",
                price=self._price(),
                currency=self.currency,
                availability="In Stock",
                is_exact_match=False,
                replacement_description="Similar product found - size or variant may differ",
            )

        return ScrapingResult.for_pair(
            store,
            product,
            currency=self.currency,
            availability="Out of Stock",
            is_exact_match=False,
            replacement_description="Product not available at this store",
        )
