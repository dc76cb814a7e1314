# sitemap_scout/report/csv_report.py

"""
CSV-отчёты SitemapScout: строки классифицированных URL и список дубликатов.

Чтение поддерживает и собственный формат, и старые отчёты с колонками
``URL`` / ``Status`` / ``Redirect URL`` (строки итогов в конце таких файлов
пропускаются).
"""
import csv
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urljoin

from sitemap_scout.aggregator import LeafReport
from sitemap_scout.crawler.models import NETWORK_ERROR, ProbeResult
from sitemap_scout.records import Category, ClassifiedRecord, categorize
from sitemap_scout.resolver import DuplicateReport
from sitemap_scout.utils import origin_of

RECORD_FIELDS = [
    "url",
    "httpStatus",
    "redirectUrl",
    "urlSuggested",
    "isRedundantRedirect",
    "redundancyTarget",
    "category",
    "indicators",
    "noIndex",
    "noFollow",
]

# колонка в отчёте -> варианты заголовка
_COLUMN_ALIASES: Dict[str, tuple] = {
    "url": ("url", "URL"),
    "httpStatus": ("httpStatus", "Status"),
    "redirectUrl": ("redirectUrl", "Redirect URL"),
    "urlSuggested": ("urlSuggested", "Suggested URL"),
}

_FLAG_FIELDS = ("isRedundantRedirect", "noIndex", "noFollow")


def _yes_no(value: Optional[bool]) -> str:
    if value is None:
        return ""
    return "Yes" if value else "No"


def _flag(value: Optional[str]) -> Optional[bool]:
    value = (value or "").strip().lower()
    if not value:
        return None
    return value in ("yes", "true", "1")


def _column(row: Dict[str, str], name: str) -> str:
    for alias in _COLUMN_ALIASES.get(name, (name,)):
        value = row.get(alias)
        if value:
            return value.strip()
    return ""


def render_csv(leaf: LeafReport, output_path: Path | str) -> Path:
    """
    Сохраняет записи leaf-отчёта в CSV (одна строка на URL, порядок sitemap).

    :param leaf: отчёт по одному sitemap
    :param output_path: путь к CSV-файлу
    :return: Path сохранённого файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=RECORD_FIELDS)
        writer.writeheader()
        for record in leaf.records:
            row = record.as_row()
            for name in _FLAG_FIELDS:
                row[name] = _yes_no(row[name])
            writer.writerow(row)
    return output


def render_duplicates_csv(duplicates: DuplicateReport, output_path: Path | str) -> Path:
    """Сохраняет URL, встречающиеся в sitemap больше одного раза, с числом повторов."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["url", "occurrences"])
        for url, count in duplicates.counts.items():
            writer.writerow([url, count])
    return output


def _read_rows(path: Path | str) -> List[Dict[str, str]]:
    with Path(path).open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fields = reader.fieldnames or []
        if not any(alias in fields for alias in _COLUMN_ALIASES["url"]):
            raise ValueError(f"CSV {path} has no 'url' column")
        # строки итогов ("Total URLs Checked: ...") не являются URL
        return [row for row in reader if origin_of(_column(row, "url")) is not None]


def read_report_urls(path: Path | str) -> List[str]:
    """Читает колонку ``url`` из ранее сохранённого CSV-отчёта."""
    return [_column(row, "url") for row in _read_rows(path)]


def _record_from_row(row: Dict[str, str]) -> ClassifiedRecord:
    url = _column(row, "url")
    label = _column(row, "httpStatus")
    status = int(label) if label.isdigit() else None
    redirect = _column(row, "redirectUrl") or None
    try:
        category = Category(_column(row, "category"))
    except ValueError:
        error = None if status is not None else (label or None)
        category = categorize(ProbeResult(url, status, redirect, error=error))
    indicators = _column(row, "indicators")
    suggested = _column(row, "urlSuggested") or None
    if suggested is None and category is Category.REDIRECT and redirect:
        suggested = urljoin(url, redirect)
    return ClassifiedRecord(
        url=url,
        status=status,
        status_label=label or NETWORK_ERROR,
        category=category,
        redirect_target=redirect if category is Category.REDIRECT else None,
        is_redundant=bool(_flag(row.get("isRedundantRedirect"))),
        redundancy_target=_column(row, "redundancyTarget") or None,
        suggested_url=suggested,
        indicators=tuple(indicators.split("|")) if indicators else (),
        no_index=_flag(row.get("noIndex")),
        no_follow=_flag(row.get("noFollow")),
    )


def read_report_records(path: Path | str) -> List[ClassifiedRecord]:
    """Восстанавливает классифицированные записи из CSV-отчёта."""
    return [_record_from_row(row) for row in _read_rows(path)]
