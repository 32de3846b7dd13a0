"""
Web lookup - searches a store's website for a product.

Fetches the store's search page through a backend, extracts product
candidates and keeps the best fuzzy match.
"""

from __future__ import annotations

import logging
from urllib.parse import quote_plus

from pricewatch.core.backends.base import Backend, RequestSpec
from pricewatch.core.config.models import LookupConfig
from pricewatch.core.extract.products import extract_product_candidates
from pricewatch.core.jobs.models import Product, ScrapingResult, Store

from .base import ProductLookup
from .matching import match_product

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Product not available at this store"


def build_search_url(store: Store, product: Product, search_path: str) -> str:
    """Build the search URL for a product at a store.

    Example:
        ("https://shop.example/", "Acme Widget", "/search?q={query}")
        -> "https://shop.example/search?q=Acme+Widget"
    """
    path = search_path.format(query=quote_plus(product.search_text))
    return store.website_url.rstrip("/") + "/" + path.lstrip("/")


class WebLookup(ProductLookup):
    """Lookup backed by a page fetching backend.

    The backend is started in open() and closed in close(), so one browser
    or connection pool serves a whole job.
    """

    def __init__(
        self,
        backend: Backend,
        config: LookupConfig | None = None,
        *,
        timeout: float = 30.0,
    ):
        self.backend = backend
        self.config = config or LookupConfig()
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"web:{self.backend.name}"

    async def open(self) -> None:
        await self.backend.start()

    async def close(self) -> None:
        await self.backend.close()

    async def attempt_lookup(self, store: Store, product: Product) -> ScrapingResult:
        url = build_search_url(store, product, self.config.search_path)
        request = RequestSpec(url=url, timeout=self.timeout, store_name=store.name)

        if self.backend.supports_javascript:
            page = await self.backend.render(request)
        else:
            page = await self.backend.fetch(request)

        candidates = extract_product_candidates(
            page.html,
            base_url=page.final_url,
            default_currency=self.config.default_currency,
        )
        logger.debug(
            f"{len(candidates)} candidates for '{product.search_text}' at {store.name}",
            extra={"store": store.name, "product": product.product_id, "url": url},
        )

        match = match_product(
            product,
            candidates,
            exact_threshold=self.config.exact_match_threshold,
            min_score=self.config.min_match_score,
        )

        if match is None:
            return ScrapingResult.for_pair(
                store,
                product,
                is_exact_match=False,
                replacement_description=NOT_AVAILABLE,
            )

        candidate = match.candidate
        replacement = None
        if not match.is_exact:
            replacement = f"Closest match: {candidate.name} (score {match.score})"

        return ScrapingResult.for_pair(
            store,
            product,
            found_product_name=candidate.name,
            price=float(candidate.price) if candidate.price is not None else None,
            currency=candidate.currency,
            availability=candidate.availability,
            is_exact_match=match.is_exact,
            replacement_description=replacement,
        )
