# File: sitemap_scout/engine.py
"""sitemap_scout.engine: Orchestration layer: resolves sitemaps, probes and classifies URLs.

Per leaf sitemap the pipeline runs in strictly separated phases:

1. probe every URL through the bounded worker pool;
2. categorise, then flag redirects whose target is already in the inventory;
3. optionally re-fetch 200 pages once, looking for soft 404s and for
   noindex / nofollow robots directives;
4. only once all of the above is complete, suggest replacements for 404s
   from the full set of known-good URLs.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from aiohttp import ClientSession, ClientTimeout

from sitemap_scout.aggregator import LeafReport, RunReport, SiteReport, Summary
from sitemap_scout.config import AuditConfig
from sitemap_scout.crawler.fetcher import UrlProbe
from sitemap_scout.crawler.models import UNRESOLVED, ProbeResult
from sitemap_scout.crawler.scheduler import ConcurrencyScheduler, ProgressCallback, log_progress
from sitemap_scout.errors import SitemapScoutError
from sitemap_scout.logger import logger
from sitemap_scout.parser.html_parser import MetaRobots, parse_meta_robots
from sitemap_scout.records import Category, ClassifiedRecord, classify_probe
from sitemap_scout.redundancy import RedundancyClassifier
from sitemap_scout.resolver import SitemapResolver, UrlInventory
from sitemap_scout.soft404 import Soft404Detector, Soft404Verdict
from sitemap_scout.suggester import SimilarUrlSuggester

__all__ = ["AuditEngine"]


def _unresolved_probe(url: str, exc: Optional[BaseException]) -> ProbeResult:
    return ProbeResult(url, None, error=UNRESOLVED)


@dataclass(slots=True, frozen=True)
class PageCheck:
    """Outcome of the content checks for one page; ``None`` means the check was not run."""

    url: str
    soft404: Optional[Soft404Verdict] = None
    robots: Optional[MetaRobots] = None


def _unchecked_page(url: str, exc: Optional[BaseException]) -> PageCheck:
    return PageCheck(url)


def _log_summary(label: str, summary: Summary) -> None:
    logger.info(
        "%s: %d URLs | OK %d (%.2f%%) | redirects %d | broken %d | soft 404 %d | redundant %d | "
        "duplicates %d | noindex %d | %.2f s",
        label,
        summary.total,
        summary.ok,
        summary.percent(summary.ok),
        summary.redirect,
        summary.broken,
        summary.soft_failure,
        summary.redundant,
        summary.duplicates,
        summary.noindex,
        summary.elapsed_s,
    )


class AuditEngine:
    """Async context manager owning the HTTP session for one audit run."""

    def __init__(
        self,
        config: AuditConfig,
        session: Optional[ClientSession] = None,
        *,
        on_progress: Optional[ProgressCallback] = log_progress,
    ) -> None:
        self.config = config
        self.session = session
        self._own_session = session is None
        self.on_progress = on_progress
        self.cancel_event = asyncio.Event()
        self.detector = Soft404Detector()
        self.probe: Optional[UrlProbe] = None
        self.resolver: Optional[SitemapResolver] = None

    async def __aenter__(self) -> AuditEngine:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        self.probe = UrlProbe(self.session, self.config)
        self.resolver = SitemapResolver(
            self.probe, max_depth=self.config.max_sitemap_depth, cancel_event=self.cancel_event
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._own_session and self.session and not self.session.closed:
            await self.session.close()

    def cancel(self) -> None:
        """Stop handing out new URLs; in-flight probes finish, the rest become unresolved."""
        self.cancel_event.set()

    async def run(self) -> RunReport:
        """Audits every configured root sitemap in turn."""
        start = time.monotonic()
        report = RunReport()
        for site in self.config.sitemaps:
            report.sites.append(await self.audit_site(str(site.url), site.site_id))
        report.elapsed_s = time.monotonic() - start
        report.interrupted = self.cancel_event.is_set()
        _log_summary("Run summary", report.summary)
        return report

    async def audit_site(self, root_url: str, site_id: str = "") -> SiteReport:
        """Resolves one root and audits each of its leaves; a root failure is recorded, not raised."""
        resolver = self._require(self.resolver)
        start = time.monotonic()
        site = SiteReport(root_url=root_url, site_id=site_id)
        if self.cancel_event.is_set():
            logger.warning("Audit cancelled, root sitemap %s not resolved", root_url)
            site.error = "audit cancelled before this sitemap was resolved"
            return site
        logger.info("Resolving sitemap %s", root_url)
        try:
            resolution = await resolver.resolve(root_url)
        except SitemapScoutError as exc:
            logger.error("Cannot resolve root sitemap %s: %s", root_url, exc)
            site.error = str(exc)
            site.elapsed_s = time.monotonic() - start
            return site

        site.failures = resolution.failures
        for inventory in resolution.leaves:
            site.leaves.append(await self.audit_inventory(inventory))
        site.elapsed_s = time.monotonic() - start
        _log_summary(f"Summary for {root_url}", site.summary)
        return site

    async def audit_urls(self, urls: Iterable[str], source: str) -> LeafReport:
        """Audits an explicit URL list as if it were one leaf sitemap named *source*."""
        return await self.audit_inventory(UrlInventory.from_locs(source, list(urls)))

    async def audit_inventory(self, inventory: UrlInventory) -> LeafReport:
        probe = self._require(self.probe)
        start = time.monotonic()
        logger.info("Checking %d URLs from %s", len(inventory.urls), inventory.sitemap_url)

        results = await self._scheduler().run_all(inventory.urls, probe.probe, _unresolved_probe)
        records = [classify_probe(result) for result in results]
        records = RedundancyClassifier(inventory.urls).classify(records)
        if self.config.check_soft404 or self.config.check_meta_robots:
            records = await self._page_pass(records)
        records = self._suggestion_pass(records)

        summary = Summary.from_records(
            records,
            duplicates=inventory.duplicates.duplicate_count,
            elapsed_s=time.monotonic() - start,
        )
        _log_summary(f"Summary for {inventory.sitemap_url}", summary)
        return LeafReport(inventory.sitemap_url, records, inventory.duplicates, summary)

    # ------------------------------------------------------------------ #
    # passes                                                             #
    # ------------------------------------------------------------------ #

    async def _page_pass(self, records: List[ClassifiedRecord]) -> List[ClassifiedRecord]:
        """Fetches every OK (200) page once for the soft-404 and meta robots checks."""
        probe = self._require(self.probe)
        candidates = [r.url for r in records if r.category is Category.OK and r.status == 200]
        if not candidates:
            return records
        soft404 = self.config.check_soft404
        robots = self.config.check_meta_robots
        logger.info("Fetching %d pages for content checks", len(candidates))

        async def _check(url: str) -> PageCheck:
            page = await probe.fetch_page(url)
            verdict = self.detector.detect(page.content, url, page.status) if soft404 else None
            directives = None
            if robots and page.status == 200:
                directives = parse_meta_robots(page.content, page.x_robots_tag)
            return PageCheck(url, verdict, directives)

        checks = await self._scheduler().run_all(candidates, _check, _unchecked_page)
        by_url = {check.url: check for check in checks}
        out: List[ClassifiedRecord] = []
        for record in records:
            check = by_url.get(record.url)
            if check is not None:
                record = self._apply_page_check(record, check)
            out.append(record)
        return out

    @staticmethod
    def _apply_page_check(record: ClassifiedRecord, check: PageCheck) -> ClassifiedRecord:
        if check.robots is not None:
            record = replace(record, no_index=check.robots.noindex, no_follow=check.robots.nofollow)
            if check.robots.is_restricted:
                logger.info(
                    "Robots directives on %s: noindex=%s nofollow=%s",
                    record.url,
                    check.robots.noindex,
                    check.robots.nofollow,
                )
        verdict = check.soft404
        if verdict is not None and verdict.is_soft404:
            logger.info("Soft 404: %s (%s)", record.url, ", ".join(verdict.indicators))
            record = replace(record, category=Category.SOFT_FAILURE, indicators=verdict.indicators)
        return record

    def _suggestion_pass(self, records: List[ClassifiedRecord]) -> List[ClassifiedRecord]:
        known_good = [r.url for r in records if r.category is Category.OK and r.status == 200]
        suggester = SimilarUrlSuggester(known_good)
        out: List[ClassifiedRecord] = []
        for record in records:
            if record.category is Category.BROKEN and record.status == 404:
                record = replace(record, suggested_url=suggester.suggest(record.url))
            out.append(record)
        return out

    def _scheduler(self) -> ConcurrencyScheduler:
        return ConcurrencyScheduler(
            self.config.concurrency,
            progress_step=self.config.progress_step,
            on_progress=self.on_progress,
            cancel_event=self.cancel_event,
        )

    @staticmethod
    def _require(component):
        if component is None:
            raise RuntimeError("AuditEngine must be used as an async context manager")
        return component
