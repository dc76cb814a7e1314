# File: sitemap_scout/suggester.py
"""sitemap_scout.suggester: Подбор замены для URL, отдающих 404.

Strategies, first match wins:

1. nearest ancestor path that is itself a known-good URL;
2. first same-origin known-good URL sharing a path keyword;
3. the site homepage.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Set

from sitemap_scout.logger import logger
from sitemap_scout.utils import origin_of, path_segments

__all__: Sequence[str] = ("SimilarUrlSuggester", "path_keywords", "suggest")

_MIN_KEYWORD_LEN = 4


def path_keywords(url: str) -> List[str]:
    """Сегменты пути, разбитые по дефису (пустые части отбрасываются)."""
    return [kw for segment in path_segments(url) for kw in segment.split("-") if kw]


class SimilarUrlSuggester:
    """Suggests replacements from a pool of URLs confirmed reachable (HTTP 200)."""

    def __init__(self, known_good: Iterable[str]) -> None:
        self.known_good: List[str] = list(dict.fromkeys(known_good))
        self._known_set: Set[str] = set(self.known_good)

    def suggest(self, broken_url: str) -> Optional[str]:
        try:
            origin = origin_of(broken_url)
            segments = path_segments(broken_url)
        except ValueError:
            origin = None
        if origin is None:
            logger.debug("Cannot suggest a replacement for malformed URL %r", broken_url)
            return None

        return (
            self._by_ancestor(origin, segments)
            or self._by_keywords(origin, broken_url)
            or origin
        )

    def _by_ancestor(self, origin: str, segments: List[str]) -> Optional[str]:
        for depth in range(len(segments) - 1, -1, -1):
            path = "/" + "/".join(segments[:depth])
            candidates = (origin + "/", origin) if path == "/" else (origin + path, origin + path + "/")
            for candidate in candidates:
                if candidate in self._known_set:
                    return candidate
        return None

    def _by_keywords(self, origin: str, broken_url: str) -> Optional[str]:
        keywords = [kw for kw in path_keywords(broken_url) if len(kw) >= _MIN_KEYWORD_LEN]
        if not keywords:
            return None
        for candidate in self.known_good:
            if candidate == broken_url:
                continue
            try:
                if origin_of(candidate) != origin:
                    continue
                candidate_keywords = path_keywords(candidate)
            except ValueError:
                continue
            for kw in keywords:
                if any(ckw in kw or kw in ckw for ckw in candidate_keywords):
                    return candidate
        return None


def suggest(broken_url: str, known_good: Iterable[str]) -> Optional[str]:
    """Удобная функция для разового вызова."""
    return SimilarUrlSuggester(known_good).suggest(broken_url)
