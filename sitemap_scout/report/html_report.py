# File: sitemap_scout/report/html_report.py
"""sitemap_scout.report.html_report: HTML-сводка аудита sitemap (Jinja2)."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sitemap_scout import __version__
from sitemap_scout.aggregator import RunReport

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def build_environment(template_dir: Optional[Union[Path, str]] = None) -> Environment:
    """Окружение Jinja2; без *template_dir* берётся встроенный шаблон пакета."""
    env = Environment(
        loader=FileSystemLoader(str(template_dir or DEFAULT_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["pct"] = lambda value: f"{value:.2f}%"
    return env


def render_html(
    report: RunReport,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Сохраняет HTML-отчёт: общая сводка, затем по каждому корневому sitemap.

    Для каждого листового sitemap выводятся только проблемные строки
    (редиректы, ошибки, soft 404); ошибки корней и пропущенные дочерние
    sitemap показываются отдельно.

    Пример:
    ```python
    from sitemap_scout.report.html_report import render_html
    html_path = render_html(report, template_dir=None, output_path='reports/report.html')
    ```
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    template = build_environment(template_dir).get_template(TEMPLATE_NAME)
    context: dict[str, Any] = {
        "summary": report.summary,
        "sites": report.sites,
        "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "version": __version__,
        "interrupted": report.interrupted,
    }
    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
