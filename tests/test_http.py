"""Tests for the HTTP client: proxying, retries and status handling."""

from __future__ import annotations

import asyncio

import aiohttp
import pytest

from local_news_aggregator.http import DomainRateLimiter, HttpClient, RetryPolicy, proxied_url


class FakeResponse:
    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self._body = body

    async def text(self, errors: str = "strict") -> str:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Replays a scripted list of responses (or exceptions) for every GET."""

    def __init__(self, script):
        self.script = list(script)
        self.requests: list[tuple[str, dict]] = []

    def get(self, url, *, headers=None, timeout=None):
        self.requests.append((url, dict(headers or {})))
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


def _client(session, *, proxy_url=None, attempts=3) -> HttpClient:
    return HttpClient(
        session=session,
        limiter=DomainRateLimiter(max_requests_per_period=100, period_seconds=1.0),
        retry=RetryPolicy(
            max_attempts=attempts,
            base_delay_seconds=0.0,
            max_delay_seconds=0.0,
            retry_statuses={429, 503},
        ),
        semaphore=asyncio.Semaphore(4),
        user_agent="test-agent",
        timeout_seconds=5,
        proxy_url=proxy_url,
    )


class TestProxiedUrl:
    def test_no_proxy(self):
        assert proxied_url("https://a.example/rss?x=1", None) == "https://a.example/rss?x=1"

    def test_appended(self):
        out = proxied_url("https://a.example/rss?x=1", "https://proxy.example/raw?url=")
        assert out == "https://proxy.example/raw?url=https%3A%2F%2Fa.example%2Frss%3Fx%3D1"

    def test_template(self):
        out = proxied_url("https://a.example/", "https://proxy.example/get?u={url}&raw=1")
        assert out == "https://proxy.example/get?u=https%3A%2F%2Fa.example%2F&raw=1"


class TestGetText:
    async def test_success(self):
        session = FakeSession([FakeResponse(200, "<rss/>")])
        assert await _client(session).get_text("https://a.example/rss") == "<rss/>"
        url, headers = session.requests[0]
        assert url == "https://a.example/rss"
        assert headers["User-Agent"] == "test-agent"

    async def test_goes_through_proxy(self):
        session = FakeSession([FakeResponse(200, "ok")])
        await _client(session, proxy_url="https://proxy.example/raw?url=").get_text("https://a.example/rss")
        assert session.requests[0][0].startswith("https://proxy.example/raw?url=https%3A")

    async def test_retryable_status_is_retried(self):
        session = FakeSession([FakeResponse(503), FakeResponse(200, "second")])
        assert await _client(session).get_text("https://a.example/rss") == "second"
        assert len(session.requests) == 2

    async def test_client_error_status_is_not_retried(self):
        session = FakeSession([FakeResponse(404)])
        assert await _client(session).get_text("https://a.example/missing") is None
        assert len(session.requests) == 1

    async def test_gives_up_after_max_attempts(self):
        session = FakeSession([aiohttp.ClientConnectionError("refused")] * 2)
        assert await _client(session, attempts=2).get_text("https://a.example/rss") is None
        assert len(session.requests) == 2

    async def test_cancellation_propagates(self):
        session = FakeSession([asyncio.CancelledError()])
        with pytest.raises(asyncio.CancelledError):
            await _client(session).get_text("https://a.example/rss")


async def test_rate_limiter_spaces_requests_per_domain():
    limiter = DomainRateLimiter(max_requests_per_period=2, period_seconds=0.2)
    loop = asyncio.get_running_loop()
    start = loop.time()
    for _ in range(3):
        await limiter.acquire("https://a.example/x")
    await limiter.acquire("https://b.example/x")
    assert loop.time() - start >= 0.15
