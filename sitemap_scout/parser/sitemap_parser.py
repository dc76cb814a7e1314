# File: sitemap_scout/parser/sitemap_parser.py
"""sitemap_scout.parser.sitemap_parser: Разбор sitemap.xml / sitemap index / текстовых sitemap."""

from __future__ import annotations

import gzip
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from lxml import etree

from sitemap_scout.errors import InvalidFormat, ParseError

_GZIP_MAGIC = b"\x1f\x8b"


class SitemapKind(str, Enum):
    INDEX = "index"
    LEAF = "leaf"


@dataclass(slots=True, frozen=True)
class SitemapNode:
    """Разобранный sitemap-документ: его URL и тип."""

    url: str
    kind: SitemapKind


@dataclass(slots=True, frozen=True)
class SitemapDocument:
    """Результат разбора: тип документа и значения <loc> (с повторами, в исходном порядке)."""

    kind: SitemapKind
    locs: Tuple[str, ...]


def parse_sitemap(content: Union[str, bytes]) -> SitemapDocument:
    """Разбирает sitemap index, urlset или текстовый список URL.

    Args:
        content: тело ответа (bytes или str), допускается gzip.

    Returns:
        SitemapDocument с типом и списком <loc>.

    Raises:
        ParseError: документ не XML и не содержит строк с URL.
        InvalidFormat: XML разобран, но это не sitemapindex и не urlset.

    Пример:
    ```python
    doc = parse_sitemap(open('sitemap.xml', 'rb').read())
    if doc.kind is SitemapKind.INDEX:
        ...
    ```
    """
    data = _maybe_gunzip(content.encode("utf-8") if isinstance(content, str) else content)
    root = _parse_xml(data)

    if root is not None:
        name = etree.QName(root).localname.lower()
        if name == "sitemapindex":
            return SitemapDocument(SitemapKind.INDEX, _locs(root, "sitemap"))
        if name == "urlset":
            return SitemapDocument(SitemapKind.LEAF, _locs(root, "url"))

    urls = parse_text_sitemap(data.decode("utf-8", errors="replace"))
    if urls:
        return SitemapDocument(SitemapKind.LEAF, tuple(urls))
    if root is None:
        raise ParseError("document is neither XML nor a plain-text URL list")
    raise InvalidFormat(
        f"neither sitemap index nor sitemap detected (root element <{etree.QName(root).localname}>)"
    )


def parse_text_sitemap(text: str) -> List[str]:
    """Текстовый sitemap: первый токен строки, начинающийся с 'http', считается URL."""
    urls: List[str] = []
    for line in text.splitlines():
        parts = line.split()
        if parts and parts[0].startswith("http"):
            urls.append(parts[0])
    return urls


def _parse_xml(data: bytes) -> Optional[etree._Element]:
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(data, parser=parser)
    except (etree.XMLSyntaxError, ValueError):
        return None


def _locs(root: etree._Element, entry: str) -> Tuple[str, ...]:
    # {*} matches any namespace, including none
    locs = root.findall(f"{{*}}{entry}/{{*}}loc")
    return tuple(loc.text.strip() for loc in locs if loc.text and loc.text.strip())


def _maybe_gunzip(data: bytes) -> bytes:
    if not data.startswith(_GZIP_MAGIC):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise ParseError(f"corrupt gzip payload: {exc}") from exc
