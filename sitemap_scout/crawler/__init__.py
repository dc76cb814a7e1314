"""sitemap_scout.crawler: HTTP probing of sitemap URLs and the bounded worker pool."""

from sitemap_scout.crawler.fetcher import UrlProbe
from sitemap_scout.crawler.models import PageData, ProbeResult
from sitemap_scout.crawler.scheduler import ConcurrencyScheduler

__all__ = ["UrlProbe", "PageData", "ProbeResult", "ConcurrencyScheduler"]
