# File: sitemap_scout/redundancy.py
"""sitemap_scout.redundancy: Поиск избыточных записей sitemap: редиректов на URL, уже присутствующие в том же sitemap."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from sitemap_scout.logger import logger
from sitemap_scout.records import Category, ClassifiedRecord
from sitemap_scout.utils import normalize_url


class RedundancyClassifier:
    """Normalized-URL index over one inventory; read-only once built."""

    def __init__(self, inventory: Iterable[str]) -> None:
        self._index: Dict[str, str] = {}
        for url in inventory:
            key = normalize_url(url)
            if key is not None:
                # first listing wins for URLs that only differ by a trailing slash
                self._index.setdefault(key, url)

    def __len__(self) -> int:
        return len(self._index)

    def match(self, source_url: str, redirect_target: str) -> Optional[str]:
        """Inventory URL that *redirect_target* (relative to *source_url*) points to, if any."""
        target_key = normalize_url(redirect_target, base=source_url)
        if target_key is None or target_key == normalize_url(source_url):
            return None
        return self._index.get(target_key)

    def classify(self, records: Iterable[ClassifiedRecord]) -> List[ClassifiedRecord]:
        """Marks redirect records whose target is itself in the inventory."""
        out: List[ClassifiedRecord] = []
        for record in records:
            if record.category is Category.REDIRECT and record.redirect_target:
                target = self.match(record.url, record.redirect_target)
                if target is not None:
                    logger.info("Redundant URL %s (redirects to %s)", record.url, target)
                    record = replace(record, is_redundant=True, redundancy_target=target)
            out.append(record)
        return out
