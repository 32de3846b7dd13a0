"""Normalization - price and availability parsing."""

from .parsing import ParsedMoney, normalize_availability, normalize_whitespace, parse_money

__all__ = [
    "ParsedMoney",
    "normalize_availability",
    "normalize_whitespace",
    "parse_money",
]
