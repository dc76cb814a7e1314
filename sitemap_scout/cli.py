#!/usr/bin/env python3
"""
Точка входа для запуска SitemapScout через командную строку.

Команды:
  scan         Разрешить sitemap, проверить все URL и сохранить отчёты
  recheck      Повторно проверить URL из ранее сохранённого CSV-отчёта
  opportunity  Собрать opportunity JSON из сохранённого CSV-отчёта
  config       Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования (e.g. "%(asctime)s %(levelname)s %(message)s")

Команда scan опции:
  --sitemap URL       Корневой sitemap (можно несколько; заменяет sitemaps из конфига)
  --site-id ID        Идентификатор сайта для --sitemap
  --concurrency N     Максимум одновременных запросов
  --soft404           Дополнительно искать soft 404 среди страниц 200
  --meta-robots       Проверять noindex/nofollow у страниц 200
  --output-dir DIR    Каталог для CSV/opportunity-файлов
  --json PATH         Сохранить полный JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблонами
  --scan-timeout SEC  Таймаут всего аудита (секунд); готовые результаты сохраняются

Дополнительно:
  --version, -v       Показать версию SitemapScout

Пример:
  sitemap-scout scan --sitemap https://example.com/sitemap.xml --soft404 --json report.json
"""
import asyncio
import sys
from datetime import datetime
from pathlib import Path

import click

from sitemap_scout import __version__
from sitemap_scout.config import load_config_or_default
from sitemap_scout.logger import init_logging
from sitemap_scout.report import (
    opportunity_from_csv,
    read_report_urls,
    render_csv,
    write_run_outputs,
)
from sitemap_scout.report.html_report import render_html
from sitemap_scout.report.json_report import render_json, write_json
from sitemap_scout.scanner import start_recheck, start_scan

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def echo_summary(report) -> None:
    s = report.summary
    click.echo(f'Total URLs Checked: {s.total}')
    click.echo(f'Successful (200): {s.ok} ({s.percent(s.ok)}%)')
    click.echo(f'Redirects: {s.redirect} ({s.percent(s.redirect)}%)')
    click.echo(f'Errors: {s.broken} ({s.percent(s.broken)}%)')
    click.echo(f'Soft 404: {s.soft_failure} ({s.percent(s.soft_failure)}%)')
    click.echo(f'Redundant URLs: {s.redundant} ({s.percent(s.redundant)}%)')
    click.echo(f'Duplicated URLs: {s.duplicates}')
    if s.noindex or s.nofollow:
        click.echo(f'NoIndex: {s.noindex} ({s.percent(s.noindex)}%), NoFollow: {s.nofollow}')
    click.echo(f'Not OK Percentage: {s.percent(s.not_ok)}%')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SitemapScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SitemapScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config_or_default(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('scan', context_settings=CONTEXT_SETTINGS)
@click.option('--sitemap', '-s', 'sitemaps', multiple=True, help='Корневой sitemap (можно несколько)')
@click.option('--site-id', 'site_id', default='', help='Идентификатор сайта для --sitemap')
@click.option('--concurrency', '-n', type=click.IntRange(min=1), default=None,
              help='Максимум одновременных запросов')
@click.option('--soft404/--no-soft404', 'soft404', default=None,
              help='Искать soft 404 среди страниц 200')
@click.option('--meta-robots/--no-meta-robots', 'meta_robots', default=None,
              help='Проверять noindex/nofollow (meta robots, X-Robots-Tag) у страниц 200')
@click.option(
    '--output-dir', '-o', 'output_dir',
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help='Каталог для CSV/opportunity-файлов'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию встроенный шаблон)'
)
@click.option(
    '--scan-timeout', 'scan_timeout',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help='Таймаут всего аудита (секунд); готовые результаты сохраняются'
)
@click.pass_context
def scan(ctx, sitemaps, site_id, concurrency, soft404, meta_robots, output_dir, json_output,
         html_output, template_dir, scan_timeout):
    """Разрешить sitemap, проверить URL и сгенерировать отчёты."""
    cfg = ctx.obj['config']
    if sitemaps:
        cfg = cfg.with_sitemaps(list(sitemaps), site_id)
    overrides = {}
    if concurrency is not None:
        overrides['concurrency'] = concurrency
    if soft404 is not None:
        overrides['check_soft404'] = soft404
    if meta_robots is not None:
        overrides['check_meta_robots'] = meta_robots
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    if not cfg.sitemaps:
        print_error('Не задан ни один sitemap: используйте --sitemap или sitemaps в конфиге')

    click.echo(f'Starting audit of {len(cfg.sitemaps)} sitemap(s)')
    try:
        report = asyncio.run(start_scan(cfg, scan_timeout=scan_timeout))
    except Exception as e:
        print_error(f'Ошибка при аудите: {e}')

    try:
        for path in write_run_outputs(report, output_dir or cfg.output_dir):
            click.echo(f'Saved: {path}')
        if json_output:
            click.echo(f'JSON report: {render_json(report, json_output)}')
        if html_output:
            click.echo(f'HTML report: {render_html(report, template_dir, html_output)}')
    except Exception as e:
        print_error(f'Ошибка при сохранении отчётов: {e}')

    echo_summary(report)
    for site in report.failed_roots:
        click.secho(f'Root sitemap failed: {site.root_url}: {site.error}', fg='red', err=True)
    if report.interrupted:
        print_error(f'Аудит не завершён за {scan_timeout} секунд, сохранены частичные результаты')
    if report.failed_roots:
        sys.exit(1)


@cli.command('recheck', context_settings=CONTEXT_SETTINGS)
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--output-dir', '-o', 'output_dir',
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help='Каталог для результата'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.pass_context
def recheck(ctx, csv_path, output_dir, json_output):
    """Повторно проверить URL из CSV-отчёта."""
    cfg = ctx.obj['config']
    try:
        urls = read_report_urls(csv_path)
    except (OSError, ValueError) as e:
        print_error(f'Ошибка чтения CSV: {e}')
    if not urls:
        print_error(f'В {csv_path} нет URL для проверки')

    click.echo(f'Rechecking {len(urls)} URLs from {csv_path}')
    try:
        report = asyncio.run(start_recheck(cfg, urls, str(csv_path)))
    except Exception as e:
        print_error(f'Ошибка при проверке: {e}')

    leaf = report.sites[0].leaves[0]
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    out_dir = Path(output_dir or cfg.output_dir)
    try:
        saved = render_csv(leaf, out_dir / f'recheck_{csv_path.stem}_{stamp}.csv')
        click.echo(f'Saved: {saved}')
        if json_output:
            click.echo(f'JSON report: {render_json(report, json_output)}')
    except Exception as e:
        print_error(f'Ошибка при сохранении отчётов: {e}')
    echo_summary(report)


@cli.command('opportunity', context_settings=CONTEXT_SETTINGS)
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--sitemap', '-s', 'sitemap_url', default=None,
              help='URL sitemap для заголовка (по умолчанию первый sitemap из конфига)')
@click.option('--site-id', 'site_id', default=None, help='Идентификатор сайта')
@click.option(
    '--output', '-o', 'output_path',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Куда сохранить JSON (по умолчанию рядом с CSV)'
)
@click.pass_context
def opportunity(ctx, csv_path, sitemap_url, site_id, output_path):
    """Собрать opportunity JSON из сохранённого CSV-отчёта."""
    cfg = ctx.obj['config']
    if sitemap_url is None and cfg.sitemaps:
        sitemap_url = str(cfg.sitemaps[0].url)
        site_id = cfg.sitemaps[0].site_id if site_id is None else site_id
    if sitemap_url is None:
        click.secho('Sitemap не задан, в заголовке будет "unknown"', fg='yellow', err=True)
        sitemap_url = 'unknown'

    try:
        document = opportunity_from_csv(csv_path, sitemap_url, site_id or '')
    except (OSError, ValueError) as e:
        print_error(f'Ошибка чтения CSV: {e}')
    if document is None:
        click.echo(f'В {csv_path} нет редиректов и ошибок, opportunity не создан')
        return

    if output_path is None:
        stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
        output_path = csv_path.parent / f'{csv_path.stem}_json_{stamp}.json'
    try:
        saved = write_json(document, output_path)
    except OSError as e:
        print_error(f'Ошибка при сохранении отчётов: {e}')
    click.echo(f'Saved: {saved}')
    click.echo(f'Suggestions: {len(document["suggestions"])}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
