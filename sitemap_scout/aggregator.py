# File: sitemap_scout/aggregator.py
"""sitemap_scout.aggregator: Сводки и контейнеры отчётов аудита (лист sitemap → корень → весь запуск)."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sitemap_scout.records import Category, ClassifiedRecord
from sitemap_scout.resolver import DuplicateReport, SitemapFailure


@dataclass(slots=True, frozen=True)
class Summary:
    """Counts per category, folded once from a list of records."""

    total: int = 0
    ok: int = 0
    redirect: int = 0
    broken: int = 0
    soft_failure: int = 0
    redundant: int = 0
    duplicates: int = 0
    noindex: int = 0
    nofollow: int = 0
    elapsed_s: float = 0.0

    @classmethod
    def from_records(
        cls,
        records: Iterable[ClassifiedRecord],
        *,
        duplicates: int = 0,
        elapsed_s: float = 0.0,
    ) -> Summary:
        counts = {category: 0 for category in Category}
        redundant = noindex = nofollow = 0
        total = 0
        for record in records:
            total += 1
            counts[record.category] += 1
            redundant += record.is_redundant
            noindex += record.no_index is True
            nofollow += record.no_follow is True
        return cls(
            total=total,
            ok=counts[Category.OK],
            redirect=counts[Category.REDIRECT],
            broken=counts[Category.BROKEN],
            soft_failure=counts[Category.SOFT_FAILURE],
            redundant=redundant,
            duplicates=duplicates,
            noindex=noindex,
            nofollow=nofollow,
            elapsed_s=round(elapsed_s, 3),
        )

    @classmethod
    def combine(cls, summaries: Iterable[Summary], *, elapsed_s: Optional[float] = None) -> Summary:
        """Roll several summaries up; elapsed time is summed unless given explicitly."""
        items = list(summaries)
        elapsed = sum(s.elapsed_s for s in items) if elapsed_s is None else elapsed_s
        return cls(
            total=sum(s.total for s in items),
            ok=sum(s.ok for s in items),
            redirect=sum(s.redirect for s in items),
            broken=sum(s.broken for s in items),
            soft_failure=sum(s.soft_failure for s in items),
            redundant=sum(s.redundant for s in items),
            duplicates=sum(s.duplicates for s in items),
            noindex=sum(s.noindex for s in items),
            nofollow=sum(s.nofollow for s in items),
            elapsed_s=round(elapsed, 3),
        )

    def percent(self, count: int) -> float:
        return round(count * 100 / self.total, 2) if self.total else 0.0

    @property
    def not_ok(self) -> int:
        return self.total - self.ok

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = asdict(self)
        data["percentages"] = {
            "ok": self.percent(self.ok),
            "redirect": self.percent(self.redirect),
            "broken": self.percent(self.broken),
            "soft_failure": self.percent(self.soft_failure),
            "redundant": self.percent(self.redundant),
            "noindex": self.percent(self.noindex),
            "not_ok": self.percent(self.not_ok),
        }
        return data


@dataclass(slots=True)
class LeafReport:
    """Classified records of one leaf sitemap."""

    sitemap_url: str
    records: List[ClassifiedRecord]
    duplicates: DuplicateReport
    summary: Summary

    def issues(self) -> List[ClassifiedRecord]:
        """Redirects and broken URLs, the rows that become suggestions downstream."""
        return [r for r in self.records if r.category in (Category.REDIRECT, Category.BROKEN)]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "sitemap_url": self.sitemap_url,
            "summary": self.summary.as_dict(),
            "duplicates": dict(self.duplicates.counts),
            "records": [r.as_row() for r in self.records],
        }


@dataclass(slots=True)
class SiteReport:
    """Everything produced for one root sitemap."""

    root_url: str
    site_id: str = ""
    leaves: List[LeafReport] = field(default_factory=list)
    failures: List[SitemapFailure] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_s: float = 0.0

    @property
    def summary(self) -> Summary:
        return Summary.combine((leaf.summary for leaf in self.leaves), elapsed_s=self.elapsed_s)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "root_url": self.root_url,
            "site_id": self.site_id,
            "error": self.error,
            "failures": [asdict(f) for f in self.failures],
            "summary": self.summary.as_dict(),
            "leaves": [leaf.as_dict() for leaf in self.leaves],
        }


@dataclass(slots=True)
class RunReport:
    """Results of one audit run over all configured roots."""

    sites: List[SiteReport] = field(default_factory=list)
    elapsed_s: float = 0.0
    interrupted: bool = False

    @property
    def summary(self) -> Summary:
        return Summary.combine((site.summary for site in self.sites), elapsed_s=self.elapsed_s)

    @property
    def failed_roots(self) -> List[SiteReport]:
        return [site for site in self.sites if site.error is not None]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.as_dict(),
            "interrupted": self.interrupted,
            "sites": [site.as_dict() for site in self.sites],
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление RunReport."""
        return json.dumps(self.as_dict(), ensure_ascii=False, indent=2 if pretty else None)
