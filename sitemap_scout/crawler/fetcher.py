# sitemap_scout/crawler/fetcher.py
"""
Fetcher module: classification-oriented HTTP probing with per-host headers,
429 retry/backoff and a per-request timeout.
"""
from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, NamedTuple, Optional, Tuple

from aiohttp import ClientError, ClientSession, ClientTimeout

from sitemap_scout.config import AuditConfig
from sitemap_scout.crawler.models import (
    MISSING_LOCATION,
    NETWORK_ERROR,
    RATE_LIMITED,
    REDIRECT_STATUS,
    PageData,
    ProbeResult,
)
from sitemap_scout.errors import FetchError, NetworkError, RateLimited


class _Response(NamedTuple):
    status: int
    location: Optional[str]
    retry_after: Optional[str]
    body: Optional[bytes]
    charset: Optional[str]
    x_robots_tag: Optional[str] = None


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(0.0, float(value.strip()))
    except ValueError:
        # HTTP-date form is not worth honouring here
        return None


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


class UrlProbe:
    """Issues one classification request per URL; redirects are never followed."""

    _HEAD_FALLBACK_STATUS = (405, 501)

    def __init__(self, session: ClientSession, config: AuditConfig) -> None:
        self.session = session
        self.config = config
        self.logger = logging.getLogger("SitemapScout")
        self._timeout = ClientTimeout(total=config.timeout)

    async def probe(self, url: str) -> ProbeResult:
        """
        Probe *url* and return its final :class:`ProbeResult`.

        Network failures and exhausted 429 retries are folded into the result,
        never raised.
        """
        start = time.monotonic()
        try:
            resp, attempts = await self._with_backoff(url, lambda: self._probe_once(url))
        except NetworkError as exc:
            self.logger.debug("Network error for %s: %s", url, exc)
            return ProbeResult(url, None, elapsed_ms=_elapsed_ms(start), error=NETWORK_ERROR)
        except RateLimited as exc:
            self.logger.warning("Giving up on %s after %d rate-limited attempts", url, exc.attempts)
            return ProbeResult(
                url, 429, elapsed_ms=_elapsed_ms(start), error=RATE_LIMITED, attempts=exc.attempts
            )

        elapsed = _elapsed_ms(start)
        if resp.status in REDIRECT_STATUS:
            if resp.location:
                return ProbeResult(url, resp.status, resp.location, elapsed, attempts=attempts)
            return ProbeResult(url, resp.status, None, elapsed, MISSING_LOCATION, attempts)
        return ProbeResult(url, resp.status, None, elapsed, attempts=attempts)

    async def fetch_page(self, url: str) -> PageData:
        """GET the full body of *url* (no redirects); failures give an empty page."""
        try:
            resp, _ = await self._with_backoff(
                url, lambda: self._send("GET", url, read_body=True)
            )
        except NetworkError as exc:
            self.logger.debug("Cannot fetch page %s: %s", url, exc)
            return PageData(url, None, "")
        except RateLimited:
            return PageData(url, 429, "")
        body = resp.body or b""
        return PageData(
            url,
            resp.status,
            body.decode(resp.charset or "utf-8", errors="replace"),
            resp.x_robots_tag or "",
        )

    async def fetch_document(self, url: str) -> bytes:
        """GET a sitemap document, following redirects; raises FetchError on failure."""
        try:
            resp, _ = await self._with_backoff(
                url, lambda: self._send("GET", url, allow_redirects=True, read_body=True)
            )
        except NetworkError as exc:
            raise FetchError(url, str(exc)) from exc
        except RateLimited as exc:
            raise FetchError(url, "rate limited", 429) from exc
        if not 200 <= resp.status < 300:
            raise FetchError(url, f"HTTP {resp.status}", resp.status)
        return resp.body or b""

    # ------------------------------------------------------------------ #
    # internals                                                          #
    # ------------------------------------------------------------------ #

    async def _probe_once(self, url: str) -> _Response:
        if self.config.probe_method == "HEAD":
            try:
                resp = await self._send("HEAD", url)
            except NetworkError as exc:
                self.logger.debug("HEAD failed for %s (%s), retrying with GET", url, exc)
            else:
                if resp.status not in self._HEAD_FALLBACK_STATUS:
                    return resp
        return await self._send("GET", url)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        allow_redirects: bool = False,
        read_body: bool = False,
    ) -> _Response:
        try:
            async with self.session.request(
                method,
                url,
                allow_redirects=allow_redirects,
                headers=self.config.headers_for(url),
                timeout=self._timeout,
            ) as resp:
                body = await resp.read() if read_body else None
                return _Response(
                    resp.status,
                    resp.headers.get("Location"),
                    resp.headers.get("Retry-After"),
                    body,
                    resp.charset,
                    resp.headers.get("X-Robots-Tag"),
                )
        except (ClientError, asyncio.TimeoutError) as exc:
            raise NetworkError(f"{method} {url}: {exc or type(exc).__name__}") from exc

    async def _with_backoff(
        self, url: str, send: Callable[[], Awaitable[_Response]]
    ) -> Tuple[_Response, int]:
        attempt = 0
        while True:
            attempt += 1
            resp = await send()
            if resp.status != 429:
                return resp, attempt
            if attempt > self.config.retry_times:
                raise RateLimited(url, attempt)
            delay = self._backoff_delay(attempt, resp.retry_after)
            self.logger.debug(
                "429 for %s, retry %d/%d after %.2f s", url, attempt, self.config.retry_times, delay
            )
            await asyncio.sleep(delay)

    def _backoff_delay(self, attempt: int, retry_after: Optional[str]) -> float:
        base = self.config.backoff_base
        delay = base * 2 ** (attempt - 1) + random.random() * base
        hinted = _parse_retry_after(retry_after)
        if hinted is not None:
            delay = max(delay, hinted)
        return min(self.config.backoff_cap, delay)
