"""Extraction - product candidates from store pages."""

from .products import ProductCandidate, extract_product_candidates

__all__ = [
    "ProductCandidate",
    "extract_product_candidates",
]
