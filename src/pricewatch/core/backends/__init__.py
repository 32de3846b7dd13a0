"""Backend implementations for fetching and rendering pages."""

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchError,
    FetchResult,
    NavigationTimeout,
    RateLimitError,
    RequestSpec,
)
from .http_backend import HttpBackend
from .playwright_backend import BrowserError, PlaywrightBackend

__all__ = [
    # Base classes
    "Backend",
    "RequestSpec",
    "FetchResult",
    # Errors
    "BackendError",
    "BlockedError",
    "BrowserError",
    "FetchError",
    "NavigationTimeout",
    "RateLimitError",
    # Implementations
    "HttpBackend",
    "PlaywrightBackend",
]
