# sitemap_scout/crawler/models.py
"""
Data models for the SitemapScout prober.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Optional

NETWORK_ERROR: Final[str] = "Network Error"
UNRESOLVED: Final[str] = "Unresolved"
RATE_LIMITED: Final[str] = "Rate limited"
MISSING_LOCATION: Final[str] = "Missing Location header"

REDIRECT_STATUS: Final[tuple[int, ...]] = (301, 302, 303, 307, 308)


@dataclass(slots=True, frozen=True)
class ProbeResult:
    """Final outcome of probing one URL (after any 429 retries).

    ``status`` is ``None`` when no HTTP response was obtained; ``error`` then
    says why (:data:`NETWORK_ERROR` or :data:`UNRESOLVED`).
    """

    url: str
    status: Optional[int]
    redirect_target: Optional[str] = None
    elapsed_ms: float = 0.0
    error: Optional[str] = None
    attempts: int = 1

    @property
    def is_redirect(self) -> bool:
        return self.status in REDIRECT_STATUS and bool(self.redirect_target)

    @property
    def status_label(self) -> str:
        """Status as written to reports: the code, or the error marker."""
        if self.status is not None:
            return str(self.status)
        return self.error or NETWORK_ERROR


@dataclass(slots=True)
class PageData:
    """Holds the URL, HTTP status, decoded body and X-Robots-Tag header of a fetched page."""

    url: str
    status: Optional[int]
    content: str
    x_robots_tag: str = ""
