# File: sitemap_scout/resolver.py
"""sitemap_scout.resolver: Обход дерева sitemap (index → дочерние sitemap) в плоские инвентари URL.

The tree is walked with an explicit worklist rather than recursion, so deep or
cyclic sitemap indexes cannot blow the stack. Only a failure of the root
document propagates; any other failing node is recorded and its siblings are
still resolved.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Sequence, Set, Tuple
from urllib.parse import urljoin

from sitemap_scout.crawler.fetcher import UrlProbe
from sitemap_scout.errors import FetchError, ParseError
from sitemap_scout.logger import logger
from sitemap_scout.parser.sitemap_parser import (
    SitemapDocument,
    SitemapKind,
    SitemapNode,
    parse_sitemap,
)
from sitemap_scout.utils import remove_duplicates, sitemap_key

CANCELLED = "resolution cancelled"

__all__: Sequence[str] = (
    "DuplicateReport",
    "UrlInventory",
    "SitemapFailure",
    "Resolution",
    "SitemapResolver",
)


@dataclass(slots=True)
class DuplicateReport:
    """URLs that occur more than once in one raw leaf sitemap, with their counts."""

    sitemap_url: str
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def duplicate_count(self) -> int:
        return len(self.counts)

    @property
    def extra_occurrences(self) -> int:
        return sum(n - 1 for n in self.counts.values())


@dataclass(slots=True)
class UrlInventory:
    """De-duplicated URLs of one leaf sitemap, in first-seen order."""

    sitemap_url: str
    urls: List[str]
    duplicates: DuplicateReport
    raw_count: int
    depth: int = 0

    @classmethod
    def from_locs(cls, sitemap_url: str, locs: Sequence[str], depth: int = 0) -> UrlInventory:
        unique, counts = remove_duplicates(locs)
        return cls(
            sitemap_url=sitemap_url,
            urls=unique,
            duplicates=DuplicateReport(sitemap_url, counts),
            raw_count=len(locs),
            depth=depth,
        )


@dataclass(slots=True, frozen=True)
class SitemapFailure:
    """A sitemap node that could not be resolved (its subtree is skipped)."""

    url: str
    error: str
    depth: int


@dataclass(slots=True)
class Resolution:
    """All leaves reachable from one root sitemap, plus the nodes that failed."""

    root_url: str
    leaves: List[UrlInventory] = field(default_factory=list)
    failures: List[SitemapFailure] = field(default_factory=list)

    @property
    def all_urls(self) -> List[str]:
        return list(dict.fromkeys(url for leaf in self.leaves for url in leaf.urls))

    @property
    def duplicate_count(self) -> int:
        return sum(leaf.duplicates.duplicate_count for leaf in self.leaves)


class SitemapResolver:
    """Fetches and flattens a sitemap tree starting at a root URL."""

    def __init__(
        self,
        probe: UrlProbe,
        *,
        max_depth: int = 10,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.probe = probe
        self.max_depth = max_depth
        self.cancel_event = cancel_event

    async def fetch_node(self, url: str) -> Tuple[SitemapNode, SitemapDocument]:
        """Загружает и разбирает один документ; FetchError / ParseError пробрасываются."""
        body = await self.probe.fetch_document(url)
        doc = parse_sitemap(body)
        return SitemapNode(url, doc.kind), doc

    async def resolve(self, root_url: str) -> Resolution:
        """Обходит дерево от *root_url*. Ошибка корневого документа фатальна."""
        resolution = Resolution(root_url)
        queue: Deque[Tuple[str, int]] = deque([(root_url, 0)])
        visited: Set[str] = set()

        while queue:
            if self.cancel_event is not None and self.cancel_event.is_set():
                logger.warning("Resolution of %s cancelled, %d sitemaps left", root_url, len(queue))
                resolution.failures.extend(
                    SitemapFailure(u, CANCELLED, d) for u, d in queue if sitemap_key(u) not in visited
                )
                break
            url, depth = queue.popleft()
            key = sitemap_key(url)
            if key in visited:
                logger.warning("Sitemap %s already visited, skipping", url)
                continue
            visited.add(key)

            try:
                node, doc = await self.fetch_node(url)
            except (FetchError, ParseError) as exc:
                if depth == 0:
                    raise
                logger.warning("Skipping sitemap %s: %s", url, exc)
                resolution.failures.append(SitemapFailure(url, str(exc), depth))
                continue

            if node.kind is SitemapKind.INDEX:
                if depth >= self.max_depth:
                    logger.warning("Sitemap index %s exceeds max depth %d", url, self.max_depth)
                    resolution.failures.append(
                        SitemapFailure(url, f"maximum sitemap depth {self.max_depth} exceeded", depth)
                    )
                    continue
                children, _ = remove_duplicates(urljoin(url, loc) for loc in doc.locs)
                logger.info("Sitemap index %s: %d child sitemaps", url, len(children))
                queue.extend((child, depth + 1) for child in children)
            else:
                leaf = UrlInventory.from_locs(url, doc.locs, depth)
                logger.info(
                    "Sitemap %s: %d URLs (%d duplicated)",
                    url,
                    len(leaf.urls),
                    leaf.duplicates.duplicate_count,
                )
                resolution.leaves.append(leaf)

        return resolution
