"""
CSV loading for store and product lists.

Both files are validated in full before anything is returned, so a user
sees every problem in one pass.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar
from urllib.parse import urlparse

from pricewatch.core.jobs.models import Product, Store

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORE_HEADERS = ("StoreName", "Website URL")
PRODUCT_HEADERS = ("ProductId", "ProductName", "Description", "Brand")


@dataclass(frozen=True)
class ValidationIssue:
    """A problem found in a CSV file.

    Row 1 is the header row; row 0 refers to the whole file.
    """

    row: int
    field: str
    message: str

    def __str__(self) -> str:
        if self.row:
            return f"row {self.row}, {self.field}: {self.message}"
        return f"{self.field}: {self.message}"


class CsvValidationError(Exception):
    """A CSV file failed validation."""

    def __init__(self, source: str, issues: list[ValidationIssue]):
        self.source = source
        self.issues = issues
        summary = "; ".join(str(issue) for issue in issues[:5])
        more = f" (+{len(issues) - 5} more)" if len(issues) > 5 else ""
        super().__init__(f"{source}: {summary}{more}")


def is_valid_url(url: str) -> bool:
    """Check for an absolute http(s) URL."""
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _read_rows(
    text: str,
    required: tuple[str, ...],
    source: str,
) -> list[tuple[int, dict[str, str]]]:
    """Parse CSV text into (row number, trimmed values) pairs."""
    reader = csv.DictReader(io.StringIO(text))
    headers = [h.strip() for h in (reader.fieldnames or [])]

    if not headers:
        raise CsvValidationError(source, [ValidationIssue(0, "file", "File is empty")])

    missing = [h for h in required if h not in headers]
    if missing:
        raise CsvValidationError(
            source,
            [ValidationIssue(1, "headers", f"Missing required columns: {', '.join(missing)}")],
        )

    reader.fieldnames = headers
    rows: list[tuple[int, dict[str, str]]] = []
    for record in reader:
        values = {key: (value or "").strip() for key, value in record.items() if key}
        if not any(values.values()):
            continue
        rows.append((reader.line_num, values))
    return rows


def _load(
    path: Path,
    required: tuple[str, ...],
    build: Callable[[list[tuple[int, dict[str, str]]], list[ValidationIssue]], list[T]],
) -> list[T]:
    source = str(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise CsvValidationError(source, [ValidationIssue(0, "file", f"Cannot read file: {e}")]) from e

    try:
        rows = _read_rows(text, required, source)
    except csv.Error as e:
        raise CsvValidationError(source, [ValidationIssue(0, "file", f"Failed to parse CSV: {e}")]) from e

    issues: list[ValidationIssue] = []
    items = build(rows, issues)

    if issues:
        raise CsvValidationError(source, issues)

    logger.info(f"Parsed {source}: {len(items)} rows")
    return items


def _require(row: int, values: dict[str, str], field: str, issues: list[ValidationIssue]) -> str:
    value = values.get(field, "")
    if not value:
        issues.append(ValidationIssue(row, field, f"{field} is required"))
    return value


def _build_stores(rows: list[tuple[int, dict[str, str]]], issues: list[ValidationIssue]) -> list[Store]:
    stores: list[Store] = []
    for row, values in rows:
        name = _require(row, values, "StoreName", issues)
        url = _require(row, values, "Website URL", issues)
        if url and not is_valid_url(url):
            issues.append(
                ValidationIssue(
                    row,
                    "Website URL",
                    "Website URL must be a valid URL (including http:// or https://)",
                )
            )
            continue
        if name and url:
            stores.append(Store(name=name, website_url=url))
    return stores


def _build_products(rows: list[tuple[int, dict[str, str]]], issues: list[ValidationIssue]) -> list[Product]:
    products: list[Product] = []
    seen: dict[str, int] = {}
    for row, values in rows:
        fields = [_require(row, values, header, issues) for header in PRODUCT_HEADERS]
        product_id = fields[0]

        if product_id in seen:
            issues.append(
                ValidationIssue(
                    row,
                    "ProductId",
                    f"Duplicate ProductId '{product_id}' (first seen on row {seen[product_id]})",
                )
            )
            continue
        if product_id:
            seen[product_id] = row

        if all(fields):
            products.append(
                Product(
                    product_id=product_id,
                    name=fields[1],
                    description=fields[2],
                    brand=fields[3],
                )
            )
    return products


def load_stores_csv(path: Path | str) -> list[Store]:
    """Load and validate a stores CSV.

    Raises:
        CsvValidationError: With every issue found
    """
    return _load(Path(path), STORE_HEADERS, _build_stores)


def load_products_csv(path: Path | str) -> list[Product]:
    """Load and validate a products CSV.

    Raises:
        CsvValidationError: With every issue found
    """
    return _load(Path(path), PRODUCT_HEADERS, _build_products)
