"""Shared fixtures."""

from __future__ import annotations

import logging

import pytest

from pricewatch.core.config.models import JitterMode, ScrapingConfig
from pricewatch.core.fetch.throttling import Pacer, PacingPolicy
from pricewatch.core.jobs.events import ProgressPublisher
from pricewatch.persistence.job_store import InMemoryJobStore

from fakes import RecordingSleep


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def publisher() -> ProgressPublisher:
    return ProgressPublisher()


@pytest.fixture
def scraping_config() -> ScrapingConfig:
    """Three attempts with 1s/2s backoff, 5s/2s pauses, no jitter."""
    return ScrapingConfig(
        inter_store_delay_ms=5000,
        inter_product_delay_ms=2000,
        per_task_timeout_ms=30000,
        max_retries=3,
        retry_initial_delay_ms=1000,
        retry_backoff_multiplier=2.0,
        retry_max_delay_ms=30000,
        pacing_jitter=JitterMode.NONE,
    )


@pytest.fixture
def pacer_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def pacer(scraping_config: ScrapingConfig, pacer_sleep: RecordingSleep) -> Pacer:
    return Pacer(PacingPolicy.from_scraping_config(scraping_config), sleep=pacer_sleep.sleep)


@pytest.fixture(autouse=True)
def reset_pricewatch_logger():
    """Undo handlers installed by setup_logging."""
    logger = logging.getLogger("pricewatch")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
