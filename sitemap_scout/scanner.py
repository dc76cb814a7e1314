# === FILE: sitemap_scout/scanner.py ===
"""
Модуль-обёртка для запуска аудита из CLI.
"""
import asyncio
from typing import List, Optional

from sitemap_scout.aggregator import RunReport, SiteReport
from sitemap_scout.config import AuditConfig
from sitemap_scout.engine import AuditEngine
from sitemap_scout.logger import logger


async def start_scan(cfg: AuditConfig, scan_timeout: Optional[float] = None) -> RunReport:
    """
    Запускает аудит всех корневых sitemap из конфигурации.

    Parameters
    ----------
    cfg : AuditConfig
        Конфигурация аудита.
    scan_timeout : float, optional
        Через сколько секунд остановить аудит. Уже проверенные URL остаются
        в отчёте, остальные помечаются как Unresolved, а ``interrupted``
        у результата выставляется в True.

    Returns
    -------
    RunReport
        Классифицированные записи и сводки по каждому sitemap.
    """
    async with AuditEngine(cfg) as engine:
        timer = None
        if scan_timeout:
            def _expire() -> None:
                logger.warning("Scan timeout of %s s reached, stopping audit", scan_timeout)
                engine.cancel()

            timer = asyncio.get_running_loop().call_later(scan_timeout, _expire)
        try:
            return await engine.run()
        finally:
            if timer is not None:
                timer.cancel()


async def start_recheck(cfg: AuditConfig, urls: List[str], source: str) -> RunReport:
    """
    Повторно проверяет список URL (например, из прошлого CSV-отчёта) как один sitemap.
    """
    async with AuditEngine(cfg) as engine:
        leaf = await engine.audit_urls(urls, source)
    site = SiteReport(root_url=source, leaves=[leaf], elapsed_s=leaf.summary.elapsed_s)
    return RunReport(sites=[site], elapsed_s=site.elapsed_s)


__all__ = ["start_scan", "start_recheck"]
