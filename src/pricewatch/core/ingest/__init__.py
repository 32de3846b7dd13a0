"""Ingest - store and product lists from CSV files."""

from .csv_loader import (
    PRODUCT_HEADERS,
    STORE_HEADERS,
    CsvValidationError,
    ValidationIssue,
    load_products_csv,
    load_stores_csv,
)

__all__ = [
    "PRODUCT_HEADERS",
    "STORE_HEADERS",
    "CsvValidationError",
    "ValidationIssue",
    "load_products_csv",
    "load_stores_csv",
]
