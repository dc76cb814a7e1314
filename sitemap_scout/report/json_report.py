# sitemap_scout/report/json_report.py

"""
Генерация JSON-отчёта для проекта SitemapScout.

Сериализация объекта RunReport в файл.
"""
import json
from pathlib import Path
from typing import Any

from sitemap_scout.aggregator import RunReport


def render_json(report: RunReport, output_path: Path | str) -> Path:
    """
    Сохраняет отчёт report в формате JSON по указанному пути.

    :param report: объект RunReport с результатами аудита
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла

    Пример:
    ```python
    from sitemap_scout.report.json_report import render_json
    report_path = render_json(report, 'reports/report.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    return write_json(report.as_dict(), output_path)


def write_json(data: Any, output_path: Path | str) -> Path:
    """Записывает произвольные данные в JSON-файл с отступами и Unicode."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    return output
