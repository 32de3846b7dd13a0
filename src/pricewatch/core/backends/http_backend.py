"""
HTTP Backend implementation using httpx.

Single-attempt fetches; retries belong to the job's task runner.
"""

from __future__ import annotations

import random
import time

import httpx

from .base import (
    Backend,
    BlockedError,
    FetchError,
    FetchResult,
    NavigationTimeout,
    RateLimitError,
    RequestSpec,
    detect_block,
)


# Common user agents for rotation
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
]


class HttpBackend(Backend):
    """HTTP backend using httpx for async requests.

    Features:
    - Persistent connection pooling
    - Automatic redirect following
    - Rate limit and block detection
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP backend.

        Args:
            timeout: Default request timeout in seconds
            user_agent: Custom user agent (default: random common agent)
            default_headers: Default headers for all requests
            transport: Custom httpx transport (used by tests)
        """
        self.timeout = timeout
        self.user_agent = user_agent or random.choice(USER_AGENTS)
        self._transport = transport

        self.default_headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-NZ,en;q=0.9",
            **(default_headers or {}),
        }

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def start(self) -> None:
        await self._ensure_client()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                transport=self._transport,
            )
        return self._client

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL.

        Raises:
            RateLimitError: On 429
            BlockedError: On block status codes or challenge pages
            NavigationTimeout: On timeout
            FetchError: On other HTTP or transport errors
        """
        client = await self._ensure_client()
        started = time.monotonic()

        try:
            response = await client.get(
                request.url,
                headers=request.headers or None,
                timeout=request.timeout,
            )
        except httpx.TimeoutException as e:
            raise NavigationTimeout(f"Timeout fetching {request.url}", url=request.url, cause=e) from e
        except httpx.HTTPError as e:
            raise FetchError(f"HTTP error: {e}", url=request.url, cause=e) from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limited by {request.url}",
                url=request.url,
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        html = response.text
        reason = detect_block(html, response.status_code)
        if reason:
            raise BlockedError(
                f"Request blocked: {reason}",
                url=request.url,
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            raise FetchError(
                f"HTTP {response.status_code} from {request.url}",
                url=request.url,
                status_code=response.status_code,
            )

        return FetchResult(
            url=request.url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=html,
            headers=dict(response.headers),
            elapsed_ms=(time.monotonic() - started) * 1000,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
