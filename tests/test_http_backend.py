"""Tests for the httpx backend."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from pricewatch.core.backends import (
    BlockedError,
    FetchError,
    HttpBackend,
    NavigationTimeout,
    RateLimitError,
    RequestSpec,
)

URL = "https://shop.example/search?q=widget"


def fetch(handler):
    async def main():
        async with HttpBackend(transport=httpx.MockTransport(handler)) as backend:
            return await backend.fetch(RequestSpec(url=URL))

    return asyncio.run(main())


def test_successful_fetch():
    result = fetch(lambda request: httpx.Response(200, html="<p>Widget</p>"))

    assert result.ok
    assert result.status_code == 200
    assert result.html == "<p>Widget</p>"
    assert result.final_url == URL


def test_sends_default_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, html="ok")

    fetch(handler)

    assert seen["accept-language"].startswith("en-NZ")
    assert seen["user-agent"].startswith("Mozilla/5.0")


def test_rate_limit():
    with pytest.raises(RateLimitError) as exc_info:
        fetch(lambda request: httpx.Response(429, headers={"Retry-After": "30"}))

    assert exc_info.value.retry_after == 30.0
    assert exc_info.value.status_code == 429


def test_blocked_status():
    with pytest.raises(BlockedError) as exc_info:
        fetch(lambda request: httpx.Response(403, html="Forbidden"))

    assert exc_info.value.status_code == 403


def test_challenge_page_is_blocked():
    with pytest.raises(BlockedError):
        fetch(lambda request: httpx.Response(200, html="<p>Please complete the CAPTCHA</p>"))


def test_not_found():
    with pytest.raises(FetchError) as exc_info:
        fetch(lambda request: httpx.Response(404, html="Not here"))

    assert exc_info.value.status_code == 404


def test_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(NavigationTimeout):
        fetch(handler)


def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FetchError) as exc_info:
        fetch(handler)

    assert isinstance(exc_info.value.cause, httpx.ConnectError)


def test_close_releases_client():
    backend = HttpBackend(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    async def main():
        await backend.start()
        await backend.close()

    asyncio.run(main())

    assert backend._client is None
