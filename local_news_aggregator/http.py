from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote, urlparse

import aiohttp

logger = logging.getLogger(__name__)

_ACCEPT = "application/rss+xml,application/atom+xml,application/xml;q=0.9,text/html;q=0.8,*/*;q=0.5"
_ACCEPT_LANGUAGE = "nl,en-US;q=0.7,en;q=0.3"


class _RetryableStatus(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"retryable status {status}")
        self.status = status


@dataclass
class RetryPolicy:
    max_attempts: int = 2
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 4.0
    retry_statuses: set[int] = field(default_factory=lambda: {429, 500, 502, 503, 504})

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff with +/-30% jitter for the given 1-based attempt."""
        delay = min(self.max_delay_seconds, self.base_delay_seconds * (2 ** (attempt - 1)))
        return delay * random.uniform(0.7, 1.3)


class DomainRateLimiter:
    """Sliding-window limit of requests per domain."""

    def __init__(self, max_requests_per_period: int, period_seconds: float) -> None:
        self._max = max_requests_per_period
        self._period = period_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._windows: dict[str, deque[float]] = {}

    async def acquire(self, url: str) -> None:
        domain = urlparse(url).netloc.lower()
        lock = self._locks.setdefault(domain, asyncio.Lock())
        window = self._windows.setdefault(domain, deque())
        loop = asyncio.get_running_loop()

        while True:
            async with lock:
                now = loop.time()
                while window and window[0] <= now - self._period:
                    window.popleft()
                if len(window) < self._max:
                    window.append(now)
                    return
                wait = window[0] + self._period - now
            await asyncio.sleep(max(0.0, wait))


def proxied_url(url: str, proxy_url: str | None) -> str:
    """Route ``url`` through a CORS-bypass proxy template.

    The template either contains ``{url}`` or ends where the encoded target
    should be appended (``https://proxy/raw?url=``).
    """
    if not proxy_url:
        return url
    encoded = quote(url, safe="")
    if "{url}" in proxy_url:
        return proxy_url.replace("{url}", encoded)
    return proxy_url + encoded


class HttpClient:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        limiter: DomainRateLimiter,
        retry: RetryPolicy,
        semaphore: asyncio.Semaphore,
        user_agent: str,
        timeout_seconds: float,
        proxy_url: str | None = None,
    ) -> None:
        self._session = session
        self._limiter = limiter
        self._retry = retry
        self._sem = semaphore
        self._headers = {
            "User-Agent": user_agent,
            "Accept": _ACCEPT,
            "Accept-Language": _ACCEPT_LANGUAGE,
        }
        self._timeout_seconds = float(timeout_seconds)
        self._proxy_url = proxy_url

    async def _attempt(self, target: str, timeout: aiohttp.ClientTimeout) -> tuple[int, Optional[str]]:
        await self._limiter.acquire(target)
        async with self._sem:
            async with self._session.get(target, headers=self._headers, timeout=timeout) as r:
                if r.status in self._retry.retry_statuses:
                    raise _RetryableStatus(r.status)
                if r.status >= 400:
                    return r.status, None
                return r.status, await r.text(errors="ignore")

    async def get_text(self, url: str, *, timeout: float | None = None) -> Optional[str]:
        """GET ``url`` (through the proxy when configured) and return the body.

        Returns None on timeouts, client errors and non-success statuses once
        retries are exhausted. Cancellation always propagates.
        """
        target = proxied_url(url, self._proxy_url)
        client_timeout = aiohttp.ClientTimeout(total=timeout if timeout is not None else self._timeout_seconds)

        attempt = 0
        while attempt < self._retry.max_attempts:
            attempt += 1
            try:
                status, body = await self._attempt(target, client_timeout)
            except (aiohttp.ClientError, asyncio.TimeoutError, _RetryableStatus) as e:
                if attempt >= self._retry.max_attempts:
                    logger.warning("GET %s failed after %d attempt(s): %s", url, attempt, e)
                    return None
                delay = self._retry.delay_for(attempt)
                logger.debug("GET %s attempt %d failed (%s); retrying in %.2fs", url, attempt, e, delay)
                # backoff happens outside the semaphore
                await asyncio.sleep(delay)
                continue

            if body is None:
                logger.warning("GET %s returned HTTP %d", url, status)
            return body

        return None
