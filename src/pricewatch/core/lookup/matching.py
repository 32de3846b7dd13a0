"""
Product matching.

Scores extracted candidates against the requested product using fuzzy
token matching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from thefuzz import fuzz

from pricewatch.core.extract.products import ProductCandidate
from pricewatch.core.jobs.models import Product
from pricewatch.core.normalize.parsing import normalize_whitespace

# Score (0-100) at or above which a candidate is the same product
EXACT_MATCH_THRESHOLD = 90

# Candidates below this score are not the product at all
MIN_MATCH_SCORE = 60


@dataclass
class MatchResult:
    """Best candidate for a product."""

    candidate: ProductCandidate
    score: int
    is_exact: bool


def score_candidate(product: Product, candidate: ProductCandidate) -> int:
    """Score how well a candidate name matches a product (0-100)."""
    wanted = normalize_whitespace(product.search_text).lower()
    found = normalize_whitespace(candidate.name).lower()
    if not wanted or not found:
        return 0
    return fuzz.token_set_ratio(wanted, found)


def match_product(
    product: Product,
    candidates: Sequence[ProductCandidate],
    *,
    exact_threshold: int = EXACT_MATCH_THRESHOLD,
    min_score: int = MIN_MATCH_SCORE,
) -> MatchResult | None:
    """Pick the best-scoring candidate.

    Ties keep the earlier candidate, so page order breaks them.

    Returns:
        Best match, or None if nothing reaches min_score
    """
    best: ProductCandidate | None = None
    best_score = -1

    for candidate in candidates:
        score = score_candidate(product, candidate)
        if score > best_score:
            best = candidate
            best_score = score

    if best is None or best_score < min_score:
        return None

    return MatchResult(
        candidate=best,
        score=best_score,
        is_exact=best_score >= exact_threshold,
    )
