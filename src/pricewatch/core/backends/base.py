"""
Backend base classes and data structures.

Defines the interface contract for page fetching backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class RequestSpec:
    """Specification for a page request."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0

    # Metadata for logging/debugging
    store_name: str | None = None
    wait_for_selector: str | None = None


@dataclass
class FetchResult:
    """Result of a fetch operation."""

    url: str
    final_url: str  # After redirects
    status_code: int
    html: str
    headers: dict[str, str] = field(default_factory=dict)

    elapsed_ms: float = 0.0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300


class Backend(ABC):
    """Abstract base class for page fetching backends.

    All backends implement fetch. Browser backends also implement render
    and report supports_javascript.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""

    @property
    def supports_javascript(self) -> bool:
        """Whether this backend can execute JavaScript."""
        return False

    async def start(self) -> None:
        """Acquire resources eagerly (browser launch, connection pool)."""

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL and return the response.

        Raises:
            BackendError: On fetch failure
        """

    async def render(self, request: RequestSpec) -> FetchResult:
        """Render a page with JavaScript execution.

        Raises:
            NotImplementedError: If backend doesn't support rendering
        """
        raise NotImplementedError(f"{self.name} backend does not support JavaScript rendering")

    async def close(self) -> None:
        """Clean up backend resources."""

    async def __aenter__(self) -> "Backend":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class FetchError(BackendError):
    """Error during fetch operation."""


class NavigationTimeout(BackendError):
    """Page didn't load in time."""


class RateLimitError(BackendError):
    """Rate limit hit (429 or similar)."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, url, status_code=429)
        self.retry_after = retry_after


class BlockedError(BackendError):
    """Request blocked by anti-bot measures."""


# Status codes that indicate blocking
BLOCKED_STATUS_CODES = {403, 406, 418, 451}

# Page text that indicates a bot challenge instead of content
BLOCKED_INDICATORS = (
    "access denied",
    "captcha",
    "challenge-platform",
    "cf-browser-verification",
    "please verify you are human",
)


def detect_block(html: str, status_code: int) -> str | None:
    """Return a reason if the response looks like an anti-bot block."""
    if status_code in BLOCKED_STATUS_CODES:
        return f"status {status_code}"

    # Large pages mention these words in normal content
    if len(html) < 50000:
        html_lower = html.lower()
        for indicator in BLOCKED_INDICATORS:
            if indicator in html_lower:
                return f"'{indicator}' found"

    return None
