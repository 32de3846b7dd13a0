"""
Playwright Backend implementation for browser automation.

Provides async browser-based fetching with:
- JavaScript rendering
- Stealth mode for bot detection avoidance
- Rotated user agents and randomized viewports
- Block detection
"""

from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING, Any

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchResult,
    NavigationTimeout,
    RequestSpec,
    detect_block,
)
from .http_backend import USER_AGENTS

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


# =============================================================================
# Browser Error Classes
# =============================================================================


class BrowserError(BackendError):
    """Base exception for browser errors."""


# =============================================================================
# Stealth Script
# =============================================================================


STEALTH_SCRIPT = """
// Override navigator.webdriver - primary detection method
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined
});

// Override navigator.languages
Object.defineProperty(navigator, 'languages', {
    get: () => ['en-NZ', 'en']
});

// Headless Chromium reports no plugins
Object.defineProperty(navigator, 'plugins', {
    get: () => [1, 2, 3]
});
"""

STEALTH_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-infobars",
    "--disable-extensions",
]


# =============================================================================
# PlaywrightBackend Implementation
# =============================================================================


class PlaywrightBackend(Backend):
    """Playwright-based browser automation backend.

    One browser context per backend instance; a job owns its backend and
    closes it when the job ends.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: float = 30.0,
        browser_type: str = "chromium",
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        user_agent: str | None = None,
        stealth: bool = True,
    ):
        """Initialize Playwright backend.

        Args:
            headless: Run browser in headless mode
            timeout: Default timeout in seconds
            browser_type: Browser to use (chromium, firefox, webkit)
            viewport_width: Maximum browser viewport width
            viewport_height: Maximum browser viewport height
            user_agent: Custom user agent string (default: rotate)
            stealth: Enable stealth mode for bot detection avoidance
        """
        self.headless = headless
        self.timeout = timeout
        self.timeout_ms = int(timeout * 1000)
        self.browser_type = browser_type
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.stealth = stealth
        self.user_agent = user_agent or random.choice(USER_AGENTS)

        # Playwright objects (initialized on start)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def name(self) -> str:
        return "playwright"

    @property
    def supports_javascript(self) -> bool:
        return True

    async def start(self) -> None:
        """Launch the browser.

        Raises:
            BackendError: If Playwright or the browser is unavailable
        """
        await self._ensure_browser()

    async def _ensure_browser(self) -> None:
        """Initialize browser if not already running."""
        if self._browser is not None and self._browser.is_connected():
            return

        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            browser_launcher = self._playwright.firefox
        elif self.browser_type == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            browser_launcher = self._playwright.chromium

        launch_args: list[str] = []
        if self.stealth and self.browser_type == "chromium":
            launch_args = [
                *STEALTH_LAUNCH_ARGS,
                f"--window-size={self.viewport_width},{self.viewport_height}",
            ]

        try:
            self._browser = await browser_launcher.launch(
                headless=self.headless,
                args=launch_args,
            )
        except Exception as e:
            await self._playwright.stop()
            self._playwright = None
            raise BackendError(
                f"Failed to launch {self.browser_type} browser. "
                "Run: playwright install chromium",
                cause=e,
            ) from e

        logger.info(f"Launched {self.browser_type} browser (headless={self.headless})")

    async def _ensure_context(self) -> BrowserContext:
        """Get or create the browser context."""
        await self._ensure_browser()

        if self._context is not None:
            return self._context

        context_options: dict[str, Any] = {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "user_agent": self.user_agent,
            "locale": "en-NZ",
            "timezone_id": "Pacific/Auckland",
            "color_scheme": "light",
            "extra_http_headers": {"Accept-Language": "en-NZ,en;q=0.9"},
        }

        self._context = await self._browser.new_context(**context_options)  # type: ignore[union-attr]

        if self.stealth:
            await self._context.add_init_script(STEALTH_SCRIPT)

        return self._context

    async def _get_page(self) -> Page:
        """Get or create a page with a randomized viewport."""
        context = await self._ensure_context()

        if self._page is None or self._page.is_closed():
            self._page = await context.new_page()
            self._page.set_default_timeout(self.timeout_ms)

            width = random.randint(min(1280, self.viewport_width), self.viewport_width)
            height = random.randint(min(720, self.viewport_height), self.viewport_height)
            await self._page.set_viewport_size({"width": width, "height": height})

        return self._page

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL with JavaScript rendering."""
        return await self.render(request)

    async def render(self, request: RequestSpec) -> FetchResult:
        """Navigate to a URL and return the rendered HTML.

        Raises:
            BlockedError: On block status codes or challenge pages
            NavigationTimeout: If the page didn't load in time
            BrowserError: On other browser failures
        """
        page = await self._get_page()
        started = time.monotonic()
        timeout_ms = int(request.timeout * 1000)

        try:
            response = await page.goto(
                request.url,
                timeout=timeout_ms,
                wait_until="domcontentloaded",
            )

            try:
                await page.wait_for_load_state("networkidle", timeout=timeout_ms / 2)
            except Exception:
                logger.debug("Network did not become idle for %s, continuing", request.url)

            if request.wait_for_selector:
                try:
                    await page.wait_for_selector(request.wait_for_selector, timeout=timeout_ms / 2)
                except Exception:
                    logger.debug("Selector %s not found on %s", request.wait_for_selector, request.url)

            html = await page.content()
            status_code = response.status if response else 200

        except Exception as e:
            if "timeout" in str(e).lower():
                raise NavigationTimeout(
                    f"Navigation timeout: {request.url}",
                    url=request.url,
                    cause=e,
                ) from e
            raise BrowserError(f"Browser error: {e}", url=request.url, cause=e) from e

        reason = detect_block(html, status_code)
        if reason:
            raise BlockedError(
                f"Bot detection triggered: {reason}",
                url=request.url,
                status_code=status_code,
            )

        return FetchResult(
            url=request.url,
            final_url=page.url,
            status_code=status_code,
            html=html,
            headers=dict(response.headers) if response else {},
            elapsed_ms=(time.monotonic() - started) * 1000,
        )

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._context is not None:
            await self._context.close()
            self._context = None
            self._page = None

        if self._browser is not None:
            await self._browser.close()
            self._browser = None
            logger.info("Browser closed")

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
