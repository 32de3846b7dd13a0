"""
Product extractor for store search and product pages.

Extracts product candidates from:
- JSON-LD schema.org markup (Product, ItemList, @graph)
- schema.org microdata (itemtype=".../Product")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterator
from urllib.parse import urljoin

from lxml import etree
from lxml import html as lxml_html

from pricewatch.core.normalize.parsing import (
    normalize_availability,
    normalize_whitespace,
    parse_money,
)

logger = logging.getLogger(__name__)


@dataclass
class ProductCandidate:
    """A product listed on a store page."""

    name: str
    price: Decimal | None = None
    currency: str | None = None
    availability: str | None = None
    url: str | None = None


def extract_product_candidates(
    html: str,
    base_url: str | None = None,
    *,
    default_currency: str = "NZD",
) -> list[ProductCandidate]:
    """Extract product candidates from a page.

    JSON-LD wins when present; microdata is only read as a fallback.

    Args:
        html: Page HTML
        base_url: URL used to resolve relative product links
        default_currency: Currency assumed for prices without one

    Returns:
        Candidates in page order, without duplicates
    """
    if not html or not html.strip():
        return []

    try:
        tree = lxml_html.fromstring(html)
    except (etree.ParserError, ValueError) as e:
        logger.warning(f"HTML parse error: {e}")
        return []

    candidates = list(_extract_jsonld(tree, default_currency))
    if not candidates:
        candidates = list(_extract_microdata(tree, default_currency))

    seen: set[tuple[str, str | None]] = set()
    unique: list[ProductCandidate] = []
    for candidate in candidates:
        if candidate.url and base_url:
            candidate.url = urljoin(base_url, candidate.url)
        key = (candidate.name.lower(), candidate.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)

    return unique


# =============================================================================
# JSON-LD
# =============================================================================


def _extract_jsonld(
    tree: lxml_html.HtmlElement,
    default_currency: str,
) -> Iterator[ProductCandidate]:
    """Extract products from JSON-LD script tags."""
    for script in tree.xpath('//script[@type="application/ld+json"]'):
        text = script.text_content()
        if not text or not text.strip():
            continue

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON-LD block")
            continue

        for item in _iter_jsonld_items(data):
            candidate = _product_from_jsonld(item, default_currency)
            if candidate is not None:
                yield candidate


def _iter_jsonld_items(data: Any) -> Iterator[dict[str, Any]]:
    """Flatten @graph arrays, lists and ItemList elements."""
    if isinstance(data, list):
        for entry in data:
            yield from _iter_jsonld_items(entry)
        return

    if not isinstance(data, dict):
        return

    if "@graph" in data:
        yield from _iter_jsonld_items(data["@graph"])
        return

    if _has_type(data, "ItemList"):
        for element in data.get("itemListElement") or []:
            if isinstance(element, dict) and isinstance(element.get("item"), dict):
                yield from _iter_jsonld_items(element["item"])
            else:
                yield from _iter_jsonld_items(element)
        return

    yield data


def _has_type(item: dict[str, Any], name: str) -> bool:
    schema_type = item.get("@type", "")
    if isinstance(schema_type, list):
        return name in schema_type
    return schema_type == name


def _product_from_jsonld(item: dict[str, Any], default_currency: str) -> ProductCandidate | None:
    if not _has_type(item, "Product"):
        return None

    name = normalize_whitespace(_as_text(item.get("name")))
    if not name:
        return None

    offer = item.get("offers")
    if isinstance(offer, list):
        offer = offer[0] if offer else None
    if isinstance(offer, dict) and _has_type(offer, "AggregateOffer") and "price" not in offer:
        offer = {**offer, "price": offer.get("lowPrice")}
    if not isinstance(offer, dict):
        offer = {}

    currency = _as_text(offer.get("priceCurrency")) or default_currency
    money = parse_money(_as_text(offer.get("price")), default_currency=currency)

    return ProductCandidate(
        name=name,
        price=money.amount,
        currency=money.currency if money.amount is not None else None,
        availability=normalize_availability(_as_text(offer.get("availability"))),
        url=_as_text(item.get("url")) or _as_text(offer.get("url")),
    )


def _as_text(value: Any) -> str | None:
    """Reduce a JSON-LD value to a string."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("name") or value.get("@value") or value.get("@id")
    elif isinstance(value, list):
        value = value[0] if value else None
        if isinstance(value, dict):
            value = value.get("name") or value.get("@value")
    if value is None:
        return None
    return str(value)


# =============================================================================
# Microdata
# =============================================================================


def _extract_microdata(
    tree: lxml_html.HtmlElement,
    default_currency: str,
) -> Iterator[ProductCandidate]:
    """Extract products from schema.org microdata."""
    for element in tree.xpath('//*[@itemscope][contains(@itemtype, "schema.org/Product")]'):
        name = normalize_whitespace(_itemprop(element, "name"))
        if not name:
            continue

        currency = _itemprop(element, "priceCurrency") or default_currency
        money = parse_money(_itemprop(element, "price"), default_currency=currency)

        yield ProductCandidate(
            name=name,
            price=money.amount,
            currency=money.currency if money.amount is not None else None,
            availability=normalize_availability(_itemprop(element, "availability")),
            url=_itemprop(element, "url"),
        )


def _itemprop(element: lxml_html.HtmlElement, prop: str) -> str | None:
    """Read the first itemprop value below an element.

    Values come from content/href attributes before text.
    """
    nodes = element.xpath(f'.//*[@itemprop="{prop}"]')
    if not nodes:
        return None

    node = nodes[0]
    for attr in ("content", "href", "src"):
        value = node.get(attr)
        if value:
            return value.strip()

    text = normalize_whitespace(node.text_content())
    return text or None
