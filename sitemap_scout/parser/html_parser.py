# === FILE: sitemap_scout/parser/html_parser.py ===
"""HTML parsing utilities for SitemapScout.

The soft-404 heuristics need only a handful of facts about a page, so this
module reduces raw markup to a :class:`PageSignals` value:

* title, first ``<h1>`` and meta description: the places a "not found"
  message is most telling;
* visible body text (scripts/styles removed);
* structural flags: forms, input fields, buttons, a search box and images
  that look like a 404 illustration.

Text fields are lower-cased so callers can do case-insensitive matching
without repeating ``.lower()`` everywhere.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup

__all__: Sequence[str] = ("MetaRobots", "PageSignals", "parse_meta_robots", "parse_page_signals")

_SEARCH_INPUTS = 'form input[type="search" i], form input[type="text" i]'
_TEXT_INPUTS = 'input[type="text" i], input[type="email" i], textarea'
_BUTTONS = 'button, input[type="submit" i], input[type="button" i]'
_404_IMAGES = (
    'img[src*="404" i][alt*="404" i], '
    'img[alt*="not found" i][src*="error" i]'
)
_META_ROBOTS = 'meta[name="robots" i]'


@dataclass(slots=True, frozen=True)
class PageSignals:
    """Lower-cased text fields and structural flags of an HTML page."""

    title: str
    h1: str
    meta_description: str
    body_text: str
    has_form: bool
    has_input_fields: bool
    has_buttons: bool
    has_search_form: bool
    has_404_image: bool

    @property
    def is_interactive(self) -> bool:
        return self.has_form or self.has_input_fields or self.has_buttons

    def headline_fields(self) -> tuple[str, str, str]:
        return self.title, self.h1, self.meta_description


def parse_page_signals(html: str) -> PageSignals:
    """Parse raw HTML into :class:`PageSignals`."""
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(" ", strip=True) if title_tag else ""

    h1_tag = soup.find("h1")
    h1 = h1_tag.get_text(" ", strip=True) if h1_tag else ""

    meta = soup.find("meta", attrs={"name": lambda v: bool(v) and v.lower() == "description"})
    description = meta.get("content", "") if meta else ""
    if not isinstance(description, str):
        description = " ".join(description)

    has_form = soup.find("form") is not None
    has_input_fields = bool(soup.select(_TEXT_INPUTS))
    has_buttons = bool(soup.select(_BUTTONS))
    has_search_form = bool(soup.select(_SEARCH_INPUTS))
    has_404_image = bool(soup.select(_404_IMAGES))

    # Visible text (skip <script>, <style>, etc.)
    for element in soup(["script", "style", "noscript", "template"]):
        element.decompose()
    body = soup.body or soup
    text = " ".join(t.strip() for t in body.stripped_strings)

    return PageSignals(
        title=title.lower(),
        h1=h1.lower(),
        meta_description=description.lower(),
        body_text=text.lower(),
        has_form=has_form,
        has_input_fields=has_input_fields,
        has_buttons=has_buttons,
        has_search_form=has_search_form,
        has_404_image=has_404_image,
    )


@dataclass(slots=True, frozen=True)
class MetaRobots:
    """Indexing directives of a page: ``<meta name="robots">`` plus the X-Robots-Tag header."""

    noindex: bool = False
    nofollow: bool = False

    @property
    def is_restricted(self) -> bool:
        return self.noindex or self.nofollow


def _directives(value: str) -> set[str]:
    # "googlebot: noindex" splits into the agent name and the directive
    tokens = set()
    for part in value.lower().replace(":", ",").split(","):
        part = part.strip()
        if part:
            tokens.add(part)
    return tokens


def parse_meta_robots(html: str, x_robots_tag: str = "") -> MetaRobots:
    """Collect noindex / nofollow from every robots meta tag and the header value.

    ``none`` is the shorthand for both directives.
    """
    directives = _directives(x_robots_tag)
    soup = BeautifulSoup(html or "", "html.parser")
    for meta in soup.select(_META_ROBOTS):
        content = meta.get("content") or ""
        if not isinstance(content, str):
            content = " ".join(content)
        directives |= _directives(content)

    both = "none" in directives
    return MetaRobots(
        noindex=both or "noindex" in directives,
        nofollow=both or "nofollow" in directives,
    )
