"""Tests for product candidate extraction."""

from __future__ import annotations

import json
from decimal import Decimal

from pricewatch.core.extract import extract_product_candidates

BASE_URL = "https://shop.example/search?q=widget"


def page(*scripts: object, body: str = "") -> str:
    blocks = "".join(
        f'<script type="application/ld+json">{s if isinstance(s, str) else json.dumps(s)}</script>'
        for s in scripts
    )
    return f"<html><head>{blocks}</head><body>{body}</body></html>"


PRODUCT = {
    "@context": "https://schema.org",
    "@type": "Product",
    "name": "Acme  Widget",
    "url": "/p/widget",
    "offers": {
        "@type": "Offer",
        "price": "19.99",
        "priceCurrency": "AUD",
        "availability": "https://schema.org/InStock",
    },
}

MICRODATA = """
<div itemscope itemtype="https://schema.org/Product">
  <a itemprop="url" href="/p/gadget"><span itemprop="name">Acme Gadget</span></a>
  <div itemprop="offers" itemscope itemtype="https://schema.org/Offer">
    <meta itemprop="priceCurrency" content="NZD">
    <span itemprop="price" content="5.50">$5.50</span>
    <link itemprop="availability" href="https://schema.org/OutOfStock">
  </div>
</div>
"""


def test_jsonld_product():
    [candidate] = extract_product_candidates(page(PRODUCT), BASE_URL)

    assert candidate.name == "Acme Widget"
    assert candidate.price == Decimal("19.99")
    assert candidate.currency == "AUD"
    assert candidate.availability == "In Stock"
    assert candidate.url == "https://shop.example/p/widget"


def test_item_list_and_graph():
    second = {"@type": "Product", "name": "Acme Widget XL", "offers": [{"price": 24}]}
    item_list = {
        "@type": "ItemList",
        "itemListElement": [
            {"@type": "ListItem", "position": 1, "item": PRODUCT},
            {"@type": "ListItem", "position": 2, "item": second},
        ],
    }

    candidates = extract_product_candidates(page({"@graph": [{"@type": "WebSite"}, item_list]}))

    assert [c.name for c in candidates] == ["Acme Widget", "Acme Widget XL"]
    assert candidates[1].price == Decimal("24")
    assert candidates[1].currency == "NZD"


def test_aggregate_offer_uses_low_price():
    product = {
        "@type": "Product",
        "name": "Acme Widget",
        "offers": {"@type": "AggregateOffer", "lowPrice": "9.50", "highPrice": "12.00"},
    }

    [candidate] = extract_product_candidates(page(product))

    assert candidate.price == Decimal("9.5")


def test_product_without_price():
    [candidate] = extract_product_candidates(page({"@type": "Product", "name": "Acme Widget"}))

    assert candidate.price is None
    assert candidate.currency is None


def test_malformed_jsonld_is_skipped():
    candidates = extract_product_candidates(page("{not json", PRODUCT))

    assert [c.name for c in candidates] == ["Acme Widget"]


def test_microdata_fallback():
    html = page({"@type": "Organization", "name": "Shop"}, body=MICRODATA)

    [candidate] = extract_product_candidates(html, BASE_URL)

    assert candidate.name == "Acme Gadget"
    assert candidate.price == Decimal("5.5")
    assert candidate.currency == "NZD"
    assert candidate.availability == "Out of Stock"
    assert candidate.url == "https://shop.example/p/gadget"


def test_jsonld_wins_over_microdata():
    candidates = extract_product_candidates(page(PRODUCT, body=MICRODATA))

    assert [c.name for c in candidates] == ["Acme Widget"]


def test_duplicates_are_dropped():
    candidates = extract_product_candidates(page(PRODUCT, PRODUCT), BASE_URL)

    assert len(candidates) == 1


def test_empty_page():
    assert extract_product_candidates("") == []
    assert extract_product_candidates("<html><body><p>No results</p></body></html>") == []
