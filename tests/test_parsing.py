"""Tests for price and availability normalization."""

from __future__ import annotations

from decimal import Decimal

import pytest

from pricewatch.core.normalize import normalize_availability, normalize_whitespace, parse_money


@pytest.mark.parametrize(
    "text, amount, currency",
    [
        ("$4.99", Decimal("4.99"), "NZD"),
        ("NZ$12.50", Decimal("12.5"), "NZD"),
        ("USD 1,234.56", Decimal("1234.56"), "USD"),
        ("1.234,56 €", Decimal("1234.56"), "EUR"),
        ("£1,299", Decimal("1299"), "GBP"),
        ("Now only 7.5", Decimal("7.5"), "NZD"),
    ],
)
def test_parse_money(text, amount, currency):
    money = parse_money(text)

    assert money.amount == amount
    assert money.currency == currency
    assert money.original == text


def test_currency_code_is_more_confident_than_bare_symbol():
    assert parse_money("AUD 5").confidence > parse_money("$5").confidence


def test_bare_dollar_keeps_default_currency():
    assert parse_money("$5", default_currency="AUD").currency == "AUD"


def test_numeric_input():
    money = parse_money(19.95)

    assert money.amount == Decimal("19.95")
    assert money.confidence == 1.0


@pytest.mark.parametrize("value", [None, "", "   ", "Call for price"])
def test_unparseable_money(value):
    money = parse_money(value)

    assert money.amount is None
    assert money.confidence == 0.0


@pytest.mark.parametrize(
    "value, label",
    [
        ("https://schema.org/InStock", "In Stock"),
        ("http://schema.org/OutOfStock", "Out of Stock"),
        ("LimitedAvailability", "Low Stock"),
        ("https://schema.org/PreOrder", "Pre-order"),
        ("Sold out", "Out of Stock"),
        ("Only 2 left in stock!", "In Stock"),
        ("Ships in  3 days", "Ships in 3 days"),
    ],
)
def test_normalize_availability(value, label):
    assert normalize_availability(value) == label


@pytest.mark.parametrize("value", [None, "", "  "])
def test_empty_availability(value):
    assert normalize_availability(value) is None


def test_normalize_whitespace():
    assert normalize_whitespace("  Acme \n Widget\t") == "Acme Widget"
    assert normalize_whitespace(None) == ""
