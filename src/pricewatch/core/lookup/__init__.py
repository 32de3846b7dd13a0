"""Lookups - perform one (store, product) price lookup."""

from __future__ import annotations

from pricewatch.core.backends import HttpBackend, PlaywrightBackend
from pricewatch.core.config.models import AppConfig, LookupMode

from .base import ProductLookup
from .matching import MatchResult, match_product, score_candidate
from .synthetic import SyntheticLookup, SyntheticLookupError
from .web import WebLookup, build_search_url


def create_lookup(config: AppConfig) -> ProductLookup:
    """Create a fresh lookup for one job.

    Args:
        config: Application configuration

    Returns:
        Unopened lookup for the configured mode
    """
    mode = config.lookup.mode
    timeout = config.scraping.per_task_timeout

    if mode == LookupMode.SYNTHETIC:
        return SyntheticLookup(currency=config.lookup.default_currency)

    if mode == LookupMode.HTTP:
        return WebLookup(HttpBackend(timeout=timeout), config.lookup, timeout=timeout)

    if mode == LookupMode.PLAYWRIGHT:
        pw = config.playwright
        backend = PlaywrightBackend(
            headless=pw.headless,
            timeout=timeout,
            browser_type=pw.browser,
            viewport_width=pw.viewport_width,
            viewport_height=pw.viewport_height,
            user_agent=pw.user_agent,
            stealth=pw.stealth,
        )
        return WebLookup(backend, config.lookup, timeout=timeout)

    raise ValueError(f"Unknown lookup mode: {mode}")


__all__ = [
    "MatchResult",
    "ProductLookup",
    "SyntheticLookup",
    "SyntheticLookupError",
    "WebLookup",
    "build_search_url",
    "create_lookup",
    "match_product",
    "score_candidate",
]
