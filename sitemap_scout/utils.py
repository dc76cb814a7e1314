# File: sitemap_scout/utils.py
"""sitemap_scout.utils: Утилитарные функции для обработки URL, дубликатов и имён файлов отчётов."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlsplit

from sitemap_scout.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "sitemap_key",
    "origin_of",
    "path_segments",
    "remove_duplicates",
    "sitemap_name",
    "host_dirname",
)


def normalize_url(url: str, base: Optional[str] = None) -> Optional[str]:
    """Канонический ключ для сравнения: origin + path без завершающего слеша.

    Относительный *url* разрешается относительно *base*. Для строк, которые
    не удаётся разобрать как http(s)-URL, возвращает ``None``.
    """
    try:
        absolute = urljoin(base, url) if base else url
        parts = urlsplit(absolute)
        origin = origin_of(absolute)
    except ValueError:
        logger.debug("Cannot normalize URL: %r", url)
        return None
    if origin is None:
        return None
    path = parts.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return origin + path


def sitemap_key(url: str) -> str:
    """Ключ посещённого sitemap: как normalize_url, но query сохраняется, fragment отбрасывается."""
    key = normalize_url(url)
    if key is None:
        return url
    query = urlsplit(url).query
    return f"{key}?{query}" if query else key


def origin_of(url: str) -> Optional[str]:
    """Возвращает ``scheme://host[:port]`` в нижнем регистре или ``None``."""
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return None
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None:
        host = f"{host}:{port}"
    return f"{parts.scheme.lower()}://{host}"


def path_segments(url: str) -> List[str]:
    """Непустые сегменты пути URL."""
    return [part for part in urlsplit(url).path.split("/") if part]


def remove_duplicates(urls: Iterable[str]) -> Tuple[List[str], Dict[str, int]]:
    """Удаляет дубликаты, сохраняя порядок; возвращает также счётчик повторов."""
    raw = list(urls)
    unique = list(dict.fromkeys(raw))
    counts = Counter(raw)
    duplicates = {url: n for url, n in counts.items() if n > 1}
    if duplicates:
        logger.debug("Removed %d duplicate URLs", len(raw) - len(unique))
    return unique, duplicates


def sitemap_name(sitemap_url: str) -> str:
    """Имя sitemap для файлов отчёта: путь без '/' в начале и '.xml', '/' → '-'."""
    path = urlsplit(sitemap_url).path
    path = path.lstrip("/")
    for suffix in (".xml.gz", ".xml"):
        if path.endswith(suffix):
            path = path[: -len(suffix)]
            break
    return path.replace("/", "-") or "sitemap"


def host_dirname(url: str) -> str:
    """Имя каталога для хоста: точки заменены на подчёркивания."""
    return (urlsplit(url).hostname or "unknown-site").replace(".", "_")
