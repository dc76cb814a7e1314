# File: sitemap_scout/report/__init__.py
"""sitemap_scout.report: Запись результатов аудита (CSV, дубликаты, opportunity JSON, HTML)."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sitemap_scout.aggregator import LeafReport, RunReport, SiteReport, Summary
from sitemap_scout.logger import logger
from sitemap_scout.records import Category
from sitemap_scout.report.csv_report import (
    read_report_records,
    read_report_urls,
    render_csv,
    render_duplicates_csv,
)
from sitemap_scout.report.html_report import render_html
from sitemap_scout.report.json_report import render_json, write_json
from sitemap_scout.report.opportunity import build_opportunity, refresh_opportunity
from sitemap_scout.resolver import DuplicateReport
from sitemap_scout.suggester import SimilarUrlSuggester
from sitemap_scout.utils import host_dirname, sitemap_name


def _file_timestamp(now: datetime) -> str:
    return now.strftime("%Y-%m-%dT%H-%M-%S")


def opportunity_filename(leaf: LeafReport, now: datetime) -> str:
    """``opp-<host без www>-<имя sitemap>-<M_DD_YYYY>.json``."""
    host = host_dirname(leaf.sitemap_url).replace("_", "-")
    if host.startswith("www-"):
        host = host[4:]
    date = f"{now.month}_{now.day:02d}_{now.year}"
    return f"opp-{host}-{sitemap_name(leaf.sitemap_url)}-{date}.json"


def write_leaf_outputs(
    leaf: LeafReport,
    site: SiteReport,
    output_dir: Union[str, Path],
    now: Optional[datetime] = None,
) -> List[Path]:
    """Записывает файлы одного sitemap в ``<output_dir>/<host>/`` и возвращает их пути."""
    now = now or datetime.now()
    target_dir = Path(output_dir) / host_dirname(leaf.sitemap_url)
    name = sitemap_name(leaf.sitemap_url)
    stamp = _file_timestamp(now)
    written = [render_csv(leaf, target_dir / f"{name}_{stamp}.csv")]

    if leaf.duplicates.counts:
        written.append(
            render_duplicates_csv(leaf.duplicates, target_dir / f"duplicates_{name}_{stamp}.csv")
        )

    if leaf.issues():
        opp_path = target_dir / opportunity_filename(leaf, now)
        document = None
        if opp_path.exists():
            try:
                existing = json.loads(opp_path.read_text(encoding="utf-8"))
                document = refresh_opportunity(existing, leaf)
                logger.info("Refreshing opportunity file %s", opp_path)
            except (ValueError, TypeError, AttributeError, OSError) as exc:
                logger.warning("Cannot refresh %s (%s), writing a new opportunity", opp_path, exc)
        if document is None:
            document = build_opportunity(leaf, site.site_id)
        written.append(write_json(document, opp_path))
    else:
        logger.info("No redirects or broken URLs in %s, no opportunity file", leaf.sitemap_url)
    return written


def write_run_outputs(
    report: RunReport, output_dir: Union[str, Path], now: Optional[datetime] = None
) -> List[Path]:
    """Записывает результаты всех листовых sitemap; частичные результаты сохраняются всегда."""
    now = now or datetime.now()
    written: List[Path] = []
    for site in report.sites:
        for leaf in site.leaves:
            paths = write_leaf_outputs(leaf, site, output_dir, now)
            for path in paths:
                logger.info("Saved %s", path)
            written.extend(paths)
    return written


def leaf_from_csv(csv_path: Union[str, Path], sitemap_url: str) -> LeafReport:
    """Rebuilds a leaf report from a saved CSV; 404 rows without a suggestion get one.

    Suggestions come from the 200 rows of the same file, the same way a live
    audit computes them.
    """
    records = read_report_records(csv_path)
    known_good = [r.url for r in records if r.category is Category.OK and r.status == 200]
    suggester = SimilarUrlSuggester(known_good)
    records = [
        replace(r, suggested_url=suggester.suggest(r.url))
        if r.status == 404 and not r.suggested_url
        else r
        for r in records
    ]
    duplicates = DuplicateReport(sitemap_url)
    return LeafReport(sitemap_url, records, duplicates, Summary.from_records(records))


def opportunity_from_csv(
    csv_path: Union[str, Path],
    sitemap_url: str,
    site_id: str = "",
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """Opportunity document for the redirects and broken URLs of a CSV report.

    Returns ``None`` when the report has no such rows.
    """
    leaf = leaf_from_csv(csv_path, sitemap_url)
    if not leaf.issues():
        logger.warning("No redirects or broken URLs in %s", csv_path)
        return None
    logger.info("Found %d issues in %s", len(leaf.issues()), csv_path)
    return build_opportunity(leaf, site_id, now)


__all__ = [
    "leaf_from_csv",
    "opportunity_from_csv",
    "opportunity_filename",
    "read_report_records",
    "read_report_urls",
    "render_csv",
    "render_duplicates_csv",
    "render_html",
    "render_json",
    "write_json",
    "write_leaf_outputs",
    "write_run_outputs",
]
