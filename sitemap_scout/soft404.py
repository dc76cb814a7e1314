# File: sitemap_scout/soft404.py
"""sitemap_scout.soft404: Обнаружение soft 404: страниц с кодом 200, которые по содержанию «не найдены»."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from sitemap_scout.parser.html_parser import PageSignals, parse_page_signals

__all__: Sequence[str] = ("Soft404Verdict", "Soft404Detector", "STRONG_INDICATORS", "WEAK_INDICATORS")

STRONG_INDICATORS: Final[Tuple[str, ...]] = (
    "404 not found",
    "page not found",
    "page cannot be found",
    "page does not exist",
    "page no longer exists",
    "content not found",
    "content unavailable",
    "no longer available",
    "no results found",
    "no matching results",
    "error 404",
    "page introuvable",
    "seite nicht gefunden",
    "pagina non trovata",
    "página no encontrada",
)

WEAK_INDICATORS: Final[Tuple[str, ...]] = (
    "not found",
    "no results",
    "sorry we couldn't find",
    "we apologize",
    "unavailable",
    "introuvable",
    "nicht gefunden",
)

# path terms that usually mean a real landing page
LEGIT_PATH_TERMS: Final[Tuple[str, ...]] = (
    "demo",
    "ebook",
    "guide",
    "download",
    "resource",
    "webinar",
    "contact",
    "form",
    "signup",
    "sign up",
    "register",
    "login",
    "log in",
    "trial",
    "free trial",
    "pricing",
    "about",
    "features",
    "product",
)
_LEGIT_PATH_SUFFIXES: Final[Tuple[str, ...]] = (".pdf", ".html")
_LEGIT_PATH_SECTIONS: Final[Tuple[str, ...]] = ("/blog/", "/article/", "/product/", "/category/")

_NO_RESULTS_PHRASES: Final[Tuple[str, ...]] = ("no results", "no matches", "nothing found")

MIN_CONTENT_LENGTH: Final[int] = 1000
WEAK_THRESHOLD: Final[int] = 2
GUARDED_WEAK_THRESHOLD: Final[int] = 3

MINIMAL_CONTENT = "minimal content without interaction"
SEARCH_NO_RESULTS = "search with no results"
IMAGE_404 = "404 image"


@dataclass(slots=True, frozen=True)
class Soft404Verdict:
    url: str
    is_soft404: bool
    http_status: Optional[int]
    indicators: Tuple[str, ...] = field(default_factory=tuple)
    status: str = "OK"


def is_likely_legit_page(url: str) -> bool:
    """True when the URL path suggests genuine content (pricing, login, blog post...)."""
    path = urlsplit(url).path.lower()
    if any(term in path for term in LEGIT_PATH_TERMS):
        return True
    return path.endswith(_LEGIT_PATH_SUFFIXES) or any(s in path for s in _LEGIT_PATH_SECTIONS)


def _matching(phrases: Sequence[str], fields: Sequence[str]) -> List[str]:
    return [p for p in phrases if any(p in f for f in fields)]


class Soft404Detector:
    """Two-tier textual heuristic guarded by structural evidence of a working page."""

    def detect(self, html: Optional[str], url: str, http_status: Optional[int]) -> Soft404Verdict:
        if http_status != 200:
            return Soft404Verdict(url, False, http_status, (), f"Hard error: HTTP {http_status}")
        if not html:
            return Soft404Verdict(url, False, http_status, (), "Error: No HTML content")
        return self.detect_signals(parse_page_signals(html), url, http_status)

    def detect_signals(
        self, page: PageSignals, url: str, http_status: Optional[int] = 200
    ) -> Soft404Verdict:
        headlines = page.headline_fields()

        strong = _matching(STRONG_INDICATORS, headlines)
        if strong:
            return Soft404Verdict(
                url, True, http_status, tuple(strong), "Soft 404 detected (strong indicators)"
            )

        indicators = _matching(WEAK_INDICATORS, headlines)
        if len(page.body_text) < MIN_CONTENT_LENGTH and not page.has_form and not page.has_input_fields:
            indicators.append(MINIMAL_CONTENT)
        if page.has_search_form and any(p in page.body_text for p in _NO_RESULTS_PHRASES):
            indicators.append(SEARCH_NO_RESULTS)
        if page.has_404_image:
            indicators.append(IMAGE_404)

        legit_path = is_likely_legit_page(url)
        guarded = legit_path or page.is_interactive
        threshold = GUARDED_WEAK_THRESHOLD if guarded else WEAK_THRESHOLD
        is_soft404 = len(indicators) >= threshold

        if page.is_interactive:
            is_soft404 = False
        if indicators == [IMAGE_404] and guarded:
            is_soft404 = False

        status = "Soft 404 detected (multiple weak indicators)" if is_soft404 else "OK"
        return Soft404Verdict(url, is_soft404, http_status, tuple(indicators), status)
