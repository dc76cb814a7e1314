# sitemap_scout/errors.py
"""
Exception hierarchy for SitemapScout.

Sitemap-level errors (``FetchError``, ``ParseError``, ``InvalidFormat``) are
raised by the resolver and scoped to the subtree they occur in. Probe-level
conditions (``NetworkError``, ``RateLimited``) are folded into
:class:`~sitemap_scout.crawler.models.ProbeResult` and only surface as
exceptions from the low-level transport helpers.
"""
from __future__ import annotations

from typing import Optional


class SitemapScoutError(Exception):
    """Base class for all project errors."""


class FetchError(SitemapScoutError):
    """A sitemap document could not be retrieved."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


class ParseError(SitemapScoutError):
    """A sitemap document is neither valid XML nor a plain-text URL list."""


class InvalidFormat(ParseError):
    """XML parsed, but is neither a sitemap index nor a urlset."""


class NetworkError(SitemapScoutError):
    """Connection failure or timeout while probing a URL."""


class RateLimited(SitemapScoutError):
    """The server kept answering 429 after all retries."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"{url}: still rate limited after {attempts} attempts")
        self.url = url
        self.attempts = attempts


__all__ = [
    "SitemapScoutError",
    "FetchError",
    "ParseError",
    "InvalidFormat",
    "NetworkError",
    "RateLimited",
]
