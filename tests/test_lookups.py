"""Tests for the product lookups."""

from __future__ import annotations

import asyncio
import json
import random

import httpx
import pytest

from pricewatch.core.backends import FetchError, HttpBackend, PlaywrightBackend
from pricewatch.core.config.models import AppConfig, LookupConfig, LookupMode
from pricewatch.core.jobs.models import Product, Store
from pricewatch.core.lookup import (
    SyntheticLookup,
    SyntheticLookupError,
    WebLookup,
    build_search_url,
    create_lookup,
)
from pricewatch.core.lookup.web import NOT_AVAILABLE

from fakes import make_products, make_stores

STORE = Store(name="Shop", website_url="https://shop.example/")
PRODUCT = Product(product_id="P1", name="Super Widget", description="Blue", brand="Acme")


def product_page(*names: str) -> str:
    items = [
        {
            "@type": "Product",
            "name": name,
            "url": f"/p/{i}",
            "offers": {"price": "12.00", "availability": "https://schema.org/InStock"},
        }
        for i, name in enumerate(names)
    ]
    return (
        "<html><head><script type=\"application/ld+json\">"
        f"{json.dumps(items)}"
        "</script></head><body>Search results</body></html>"
    )


def web_lookup(handler) -> WebLookup:
    backend = HttpBackend(transport=httpx.MockTransport(handler))
    return WebLookup(backend, LookupConfig(mode=LookupMode.HTTP))


def lookup_once(lookup: WebLookup):
    async def main():
        async with lookup:
            return await lookup.attempt_lookup(STORE, PRODUCT)

    return asyncio.run(main())


def test_build_search_url():
    assert (
        build_search_url(STORE, PRODUCT, "/search?q={query}")
        == "https://shop.example/search?q=Acme+Super+Widget"
    )
    assert (
        build_search_url(Store("Shop", "https://shop.example/nz"), PRODUCT, "s/{query}")
        == "https://shop.example/nz/s/Acme+Super+Widget"
    )


class TestWebLookup:
    def test_exact_match(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            assert request.url.params["q"] == "Acme Super Widget"
            return httpx.Response(200, html=product_page("Garden Hose", "Acme Super Widget"))

        result = lookup_once(web_lookup(handler))

        assert requested[0].startswith("https://shop.example/search?q=")
        assert len(requested) == 1
        assert result.product_id == "P1"
        assert result.store_name == "Shop"
        assert result.found_product_name == "Acme Super Widget"
        assert result.price == 12.0
        assert result.currency == "NZD"
        assert result.availability == "In Stock"
        assert result.is_exact_match
        assert result.replacement_description is None

    def test_closest_match_is_a_replacement(self):
        result = lookup_once(
            web_lookup(lambda request: httpx.Response(200, html=product_page("Acme Widget Deluxe")))
        )

        assert not result.is_exact_match
        assert result.found_product_name == "Acme Widget Deluxe"
        assert result.replacement_description.startswith("Closest match: Acme Widget Deluxe")

    def test_no_match(self):
        result = lookup_once(
            web_lookup(lambda request: httpx.Response(200, html="<html><body>No results</body></html>"))
        )

        assert result.price is None
        assert not result.is_exact_match
        assert result.replacement_description == NOT_AVAILABLE
        assert not result.failed

    def test_server_error_raises(self):
        lookup = web_lookup(lambda request: httpx.Response(500, text="Server error"))

        with pytest.raises(FetchError):
            lookup_once(lookup)

    def test_name(self):
        assert web_lookup(lambda request: httpx.Response(200)).name == "web:http"


class TestSyntheticLookup:
    def test_results_are_plausible(self):
        lookup = SyntheticLookup(random.Random(42))
        pairs = [(store, product) for store in make_stores(5) for product in make_products(10)]

        async def main():
            return [await lookup.attempt_lookup(store, product) for store, product in pairs]

        results = asyncio.run(main())

        assert lookup.attempts == 50
        assert [r.key for r in results] == [(p.product_id, s.name) for s, p in pairs]
        for result in results:
            assert result.currency == "NZD"
            assert not result.failed
            if result.price is None:
                assert result.availability == "Out of Stock"
                assert not result.is_exact_match
            else:
                assert 9.99 <= result.price <= 59.99
            if result.replacement_description:
                assert not result.is_exact_match
        assert any(r.is_exact_match for r in results)

    def test_seeded_runs_repeat(self):
        store, product = make_stores(1)[0], make_products(1)[0]

        async def sample(seed):
            lookup = SyntheticLookup(random.Random(seed))
            return [await lookup.attempt_lookup(store, product) for _ in range(5)]

        assert asyncio.run(sample(3)) == asyncio.run(sample(3))

    def test_injected_failures(self):
        lookup = SyntheticLookup(random.Random(1), failure_rate=1.0)

        with pytest.raises(SyntheticLookupError):
            asyncio.run(lookup.attempt_lookup(STORE, PRODUCT))

    def test_failure_rate_bounds(self):
        with pytest.raises(ValueError):
            SyntheticLookup(failure_rate=1.5)


@pytest.mark.parametrize(
    "mode, backend_type",
    [(LookupMode.HTTP, HttpBackend), (LookupMode.PLAYWRIGHT, PlaywrightBackend)],
)
def test_create_web_lookup(mode, backend_type):
    lookup = create_lookup(AppConfig(lookup=LookupConfig(mode=mode)))

    assert isinstance(lookup, WebLookup)
    assert isinstance(lookup.backend, backend_type)
    assert lookup.timeout == 30.0


def test_create_synthetic_lookup():
    lookup = create_lookup(AppConfig(lookup=LookupConfig(default_currency="AUD")))

    assert isinstance(lookup, SyntheticLookup)
    assert lookup.currency == "AUD"
