"""
Pydantic configuration models for PriceWatch.

These models provide type-safe configuration with validation for:
- Scraping pacing, timeouts and retries
- Product lookup backends
- Browser automation
- Logging
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class LookupMode(str, Enum):
    """How a (store, product) lookup is performed."""

    SYNTHETIC = "synthetic"
    HTTP = "http"
    PLAYWRIGHT = "playwright"


class JitterMode(str, Enum):
    """Perturbation applied to pacing delays."""

    NONE = "none"
    SYMMETRIC = "symmetric"  # delay +/- fraction * delay
    ADDITIVE = "additive"  # delay + uniform(0, additive_jitter_ms)


# =============================================================================
# Scraping Configuration
# =============================================================================


class ScrapingConfig(BaseModel):
    """Job pacing, timeout and retry settings."""

    max_concurrent_jobs: int = Field(
        default=2,
        ge=1,
        le=50,
        description="Expected concurrent jobs per process (informational only)",
    )
    inter_store_delay_ms: int = Field(
        default=5000,
        ge=0,
        description="Pause after finishing one store, before the next",
    )
    inter_product_delay_ms: int = Field(
        default=2000,
        ge=0,
        description="Pause between products of the same store",
    )
    per_task_timeout_ms: int = Field(
        default=30000,
        ge=100,
        le=600000,
        description="Timeout for a single lookup attempt",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per (store, product) task",
    )
    retry_initial_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay before the first retry",
    )
    retry_backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier for retries",
    )
    retry_max_delay_ms: int = Field(
        default=30000,
        ge=0,
        description="Upper bound for a single retry delay",
    )
    retry_jitter: bool = Field(
        default=False,
        description="Randomize retry delays up to the exponential bound (full jitter)",
    )
    pacing_jitter: JitterMode = Field(
        default=JitterMode.SYMMETRIC,
        description="Jitter policy for inter-store/inter-product pauses",
    )
    jitter_fraction: float = Field(
        default=0.25,
        ge=0.0,
        le=1.0,
        description="Fraction of the delay used by symmetric jitter",
    )
    additive_jitter_ms: int = Field(
        default=500,
        ge=0,
        description="Upper bound of the extra delay used by additive jitter",
    )

    @field_validator("retry_max_delay_ms")
    @classmethod
    def max_delay_gte_initial(cls, v: int, info: Any) -> int:
        """Ensure the retry delay cap is at least the initial delay."""
        initial = info.data.get("retry_initial_delay_ms", 0)
        if v < initial:
            raise ValueError("retry_max_delay_ms must be >= retry_initial_delay_ms")
        return v

    @property
    def per_task_timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        return self.per_task_timeout_ms / 1000.0


# =============================================================================
# Lookup Configuration
# =============================================================================


class LookupConfig(BaseModel):
    """Product lookup settings."""

    mode: LookupMode = Field(
        default=LookupMode.SYNTHETIC,
        description="Lookup implementation to use",
    )
    search_path: str = Field(
        default="/search?q={query}",
        description="Search path appended to a store URL; {query} is url-encoded",
    )
    exact_match_threshold: int = Field(
        default=90,
        ge=0,
        le=100,
        description="Minimum match score (0-100) for an exact match",
    )
    min_match_score: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Candidates scoring below this are ignored",
    )
    default_currency: str = Field(
        default="NZD",
        min_length=3,
        max_length=3,
        description="Currency used when a page does not state one",
    )

    @field_validator("search_path")
    @classmethod
    def search_path_has_query(cls, v: str) -> str:
        """Require the {query} placeholder."""
        if "{query}" not in v:
            raise ValueError("search_path must contain '{query}'")
        return v


# =============================================================================
# Playwright Configuration
# =============================================================================


class PlaywrightConfig(BaseModel):
    """Playwright-specific backend configuration."""

    browser: str = Field(
        default="chromium",
        description="Browser to use: chromium, firefox, webkit",
    )
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )
    viewport_width: int = Field(
        default=1920,
        ge=320,
        le=3840,
        description="Browser viewport width",
    )
    viewport_height: int = Field(
        default=1080,
        ge=240,
        le=2160,
        description="Browser viewport height",
    )
    user_agent: str | None = Field(
        default=None,
        description="Custom user agent string (default: rotate common agents)",
    )
    stealth: bool = Field(
        default=True,
        description="Enable stealth mode to avoid bot detection",
    )

    @field_validator("browser")
    @classmethod
    def known_browser(cls, v: str) -> str:
        if v not in {"chromium", "firefox", "webkit"}:
            raise ValueError("browser must be one of: chromium, firefox, webkit")
        return v


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/pricewatch.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    scraping: ScrapingConfig = Field(default_factory=ScrapingConfig)
    lookup: LookupConfig = Field(default_factory=LookupConfig)
    playwright: PlaywrightConfig = Field(default_factory=PlaywrightConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
