# File: sitemap_scout/records.py
"""sitemap_scout.records: Классифицированные записи, итоговый артефакт аудита для каждого URL."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urljoin

from sitemap_scout.crawler.models import ProbeResult


class Category(str, Enum):
    OK = "OK"
    REDIRECT = "Redirect"
    BROKEN = "Broken"
    SOFT_FAILURE = "SoftFailure"


@dataclass(slots=True, frozen=True)
class ClassifiedRecord:
    """One audited URL. Frozen: later passes produce copies via ``dataclasses.replace``."""

    url: str
    status: Optional[int]
    status_label: str
    category: Category
    redirect_target: Optional[str] = None
    is_redundant: bool = False
    redundancy_target: Optional[str] = None
    suggested_url: Optional[str] = None
    indicators: Tuple[str, ...] = ()
    elapsed_ms: float = 0.0
    # None: the page was not checked for robots directives
    no_index: Optional[bool] = None
    no_follow: Optional[bool] = None

    def as_row(self) -> Dict[str, Any]:
        """Canonical report row."""
        return {
            "url": self.url,
            "httpStatus": self.status_label,
            "redirectUrl": self.redirect_target or "",
            "urlSuggested": self.suggested_url or "",
            "isRedundantRedirect": self.is_redundant,
            "redundancyTarget": self.redundancy_target or "",
            "category": self.category.value,
            "indicators": "|".join(self.indicators),
            "noIndex": self.no_index,
            "noFollow": self.no_follow,
        }


def categorize(result: ProbeResult) -> Category:
    if result.status is None:
        return Category.BROKEN
    if 200 <= result.status < 300:
        return Category.OK
    if result.is_redirect:
        return Category.REDIRECT
    return Category.BROKEN


def classify_probe(result: ProbeResult) -> ClassifiedRecord:
    """Builds the record for a probe result; redirects get their absolute target as suggestion."""
    category = categorize(result)
    suggested = None
    if category is Category.REDIRECT and result.redirect_target:
        try:
            suggested = urljoin(result.url, result.redirect_target)
        except ValueError:
            suggested = result.redirect_target
    return ClassifiedRecord(
        url=result.url,
        status=result.status,
        status_label=result.status_label,
        category=category,
        redirect_target=result.redirect_target if category is Category.REDIRECT else None,
        suggested_url=suggested,
        elapsed_ms=result.elapsed_ms,
    )
