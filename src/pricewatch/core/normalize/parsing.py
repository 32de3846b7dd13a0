"""
Parsing utilities for normalizing extracted data.

Handles price and availability parsing from various formats.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal


# =============================================================================
# Money Parsing
# =============================================================================


@dataclass
class ParsedMoney:
    """Result of parsing a price value."""

    amount: Decimal | None
    currency: str
    original: str
    confidence: float


# Currency symbols and their codes, longest first so "NZ$" wins over "$"
CURRENCY_SYMBOLS = {
    "NZ$": "NZD",
    "AU$": "AUD",
    "CA$": "CAD",
    "US$": "USD",
    "A$": "AUD",
    "C$": "CAD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
}

# Currency code patterns
CURRENCY_CODES = {"NZD", "AUD", "USD", "EUR", "GBP", "JPY", "CAD", "INR", "CHF", "CNY"}


def parse_money(
    value: str | float | Decimal | None,
    *,
    default_currency: str = "NZD",
) -> ParsedMoney:
    """Parse a price from various formats.

    Handles:
    - Currency symbols ($4.99, NZ$4.99)
    - Currency codes (NZD 4.99)
    - Thousands separators (1,234.56 and 1.234,56)
    - Plain numbers

    A bare "$" keeps the default currency.
    """
    if value is None:
        return ParsedMoney(amount=None, currency=default_currency, original="", confidence=0.0)

    original = str(value).strip()

    if not original:
        return ParsedMoney(amount=None, currency=default_currency, original=original, confidence=0.0)

    if isinstance(value, (int, float, Decimal)):
        return ParsedMoney(
            amount=Decimal(str(value)),
            currency=default_currency,
            original=original,
            confidence=1.0,
        )

    text = original.upper()

    currency = default_currency
    confidence = 0.8

    for code in CURRENCY_CODES:
        if code in text:
            currency = code
            confidence = 0.95
            break
    else:
        for symbol, code in CURRENCY_SYMBOLS.items():
            if symbol in original:
                currency = code
                confidence = 0.9
                break

    numeric_text = text
    for code in CURRENCY_CODES:
        numeric_text = numeric_text.replace(code, "")
    for symbol in CURRENCY_SYMBOLS:
        numeric_text = numeric_text.replace(symbol.upper(), "")

    number_match = re.search(r"\d[\d,.]*", numeric_text)
    if number_match:
        amount = _parse_numeric(number_match.group())
        if amount is not None:
            return ParsedMoney(
                amount=Decimal(str(amount)),
                currency=currency,
                original=original,
                confidence=confidence,
            )

    return ParsedMoney(amount=None, currency=currency, original=original, confidence=0.0)


def _parse_numeric(text: str) -> float | None:
    """Parse a numeric string, handling commas and decimals."""
    text = text.strip().rstrip(".,")
    if not text:
        return None

    # The last separator decides the decimal mark
    last_comma = text.rfind(",")
    last_period = text.rfind(".")

    if last_comma > last_period:
        # European format: 1.234,56 (a lone comma with 3 digits after is thousands)
        if last_period == -1 and len(text) - last_comma - 1 == 3:
            text = text.replace(",", "")
        else:
            text = text.replace(".", "").replace(",", ".")
    else:
        # US format: 1,234.56
        text = text.replace(",", "")

    try:
        return float(text)
    except ValueError:
        return None


# =============================================================================
# Availability Parsing
# =============================================================================


AVAILABILITY_LABELS = {
    "instock": "In Stock",
    "in stock": "In Stock",
    "available": "In Stock",
    "limitedavailability": "Low Stock",
    "low stock": "Low Stock",
    "outofstock": "Out of Stock",
    "out of stock": "Out of Stock",
    "soldout": "Out of Stock",
    "sold out": "Out of Stock",
    "discontinued": "Out of Stock",
    "preorder": "Pre-order",
    "backorder": "Pre-order",
}


def normalize_availability(value: str | None) -> str | None:
    """Map schema.org availability URLs and page labels to a display label.

    Examples:
        "https://schema.org/InStock" -> "In Stock"
        "Sold out" -> "Out of Stock"
    """
    if value is None:
        return None

    text = normalize_whitespace(value)
    if not text:
        return None

    # schema.org URLs: keep the last path segment
    key = text.rsplit("/", 1)[-1].lower()
    if key in AVAILABILITY_LABELS:
        return AVAILABILITY_LABELS[key]

    lowered = text.lower()
    for pattern, label in AVAILABILITY_LABELS.items():
        if " " in pattern and pattern in lowered:
            return label

    return text


# =============================================================================
# Utility Functions
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Normalize whitespace in text."""
    if text is None:
        return ""
    return " ".join(text.split())
