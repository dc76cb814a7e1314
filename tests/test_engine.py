# File: tests/test_engine.py
# End-to-end audit runs against a small fake site
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import List, Tuple

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from sitemap_scout.config import SiteConfig
from sitemap_scout.crawler.models import UNRESOLVED
from sitemap_scout.engine import AuditEngine
from sitemap_scout.records import Category
from sitemap_scout.scanner import start_recheck, start_scan

LONG_TEXT = "Plenty of genuine, useful words on this page. " * 40


def _html(title: str, body: str = LONG_TEXT) -> web.Response:
    return web.Response(
        text=f"<html><head><title>{title}</title></head><body><p>{body}</p></body></html>",
        content_type="text/html",
    )


@pytest_asyncio.fixture
async def fake_site(
    serve_app, xml_builders, closed_port
) -> AsyncIterator[Tuple[str, List[str]]]:
    urlset, sitemap_index = xml_builders
    agents: List[str] = []
    app = web.Application()
    base_holder: List[str] = []

    def url(path: str) -> str:
        return base_holder[0] + path

    async def index(request):
        agents.append(request.headers.get("User-Agent", ""))
        return web.Response(
            text=sitemap_index(
                url("/pages.xml"),
                url("/missing.xml"),
                f"http://127.0.0.1:{closed_port}/unreachable.xml",
            ),
            content_type="application/xml",
        )

    async def pages(request):
        body = urlset(
            url("/ok"),
            url("/blog/2020"),
            url("/blog/2020/old-post"),
            url("/old"),
            url("/moved-out"),
            url("/soft"),
            url("/ok"),
        )
        return web.Response(text=body, content_type="application/xml")

    async def ok(request):
        return _html("Welcome")

    async def blog(request):
        return _html("Blog 2020")

    async def old(request):
        return web.Response(status=301, headers={"Location": "/ok/"})

    async def moved_out(request):
        return web.Response(status=302, headers={"Location": "https://elsewhere.example/"})

    async def soft(request):
        return _html("Page Not Found")

    app.router.add_get("/sitemap.xml", index)
    app.router.add_get("/pages.xml", pages)
    app.router.add_get("/ok", ok)
    app.router.add_get("/blog/2020", blog)
    app.router.add_get("/old", old)
    app.router.add_get("/moved-out", moved_out)
    app.router.add_get("/soft", soft)

    base = await serve_app(app)
    base_holder.append(base)
    yield base, agents


def _by_url(leaf):
    return {record.url: record for record in leaf.records}


@pytest.mark.asyncio()
async def test_full_audit(fake_site, audit_config, closed_port):
    base, agents = fake_site
    config = audit_config.model_copy(
        update={
            "sitemaps": [SiteConfig(url=f"{base}/sitemap.xml", site_id="site-1")],
            "check_soft404": True,
        }
    )

    report = await start_scan(config)

    assert agents == ["TestAgent/1.0"]
    [site] = report.sites
    assert site.error is None
    assert site.site_id == "site-1"
    missing, unreachable = site.failures
    assert missing.url == f"{base}/missing.xml"
    assert missing.error.endswith("HTTP 404")
    assert unreachable.url == f"http://127.0.0.1:{closed_port}/unreachable.xml"
    assert unreachable.depth == 1
    # connection refused: a network failure, not an HTTP status
    assert "HTTP " not in unreachable.error

    [leaf] = site.leaves
    assert [r.url for r in leaf.records] == [
        f"{base}/ok",
        f"{base}/blog/2020",
        f"{base}/blog/2020/old-post",
        f"{base}/old",
        f"{base}/moved-out",
        f"{base}/soft",
    ]
    records = _by_url(leaf)

    assert records[f"{base}/ok"].category is Category.OK

    old_post = records[f"{base}/blog/2020/old-post"]
    assert old_post.category is Category.BROKEN
    assert old_post.status == 404
    assert old_post.suggested_url == f"{base}/blog/2020"

    old = records[f"{base}/old"]
    assert old.category is Category.REDIRECT
    assert old.is_redundant
    assert old.redundancy_target == f"{base}/ok"
    assert old.suggested_url == f"{base}/ok/"

    moved = records[f"{base}/moved-out"]
    assert moved.category is Category.REDIRECT
    assert not moved.is_redundant
    assert moved.suggested_url == "https://elsewhere.example/"

    soft = records[f"{base}/soft"]
    assert soft.category is Category.SOFT_FAILURE
    assert "page not found" in soft.indicators

    summary = report.summary
    assert (summary.total, summary.ok, summary.redirect, summary.broken) == (6, 2, 2, 1)
    assert (summary.soft_failure, summary.redundant, summary.duplicates) == (1, 1, 1)
    assert summary.percent(summary.ok) == 33.33
    assert report.failed_roots == []


@pytest.mark.asyncio()
async def test_soft404_check_disabled(fake_site, audit_config):
    base, _ = fake_site
    config = audit_config.with_sitemaps([f"{base}/sitemap.xml"])
    report = await start_scan(config)
    records = _by_url(report.sites[0].leaves[0])
    assert records[f"{base}/soft"].category is Category.OK
    # without the soft-404 pass, the soft page still counts as known-good
    assert report.summary.soft_failure == 0


@pytest.mark.asyncio()
async def test_failed_root_does_not_stop_other_roots(fake_site, audit_config):
    base, _ = fake_site
    config = audit_config.with_sitemaps([f"{base}/nope.xml", f"{base}/pages.xml"])
    report = await start_scan(config)

    failed, good = report.sites
    assert failed.error is not None and failed.error.endswith("HTTP 404")
    assert failed.leaves == []
    assert good.error is None
    assert good.summary.total == 6
    assert report.failed_roots == [failed]


@pytest.mark.asyncio()
async def test_recheck_urls(fake_site, audit_config):
    base, _ = fake_site
    urls = [f"{base}/ok", f"{base}/blog/2020", f"{base}/blog/2020/gone"]
    report = await start_recheck(audit_config, urls, "old-report.csv")
    [site] = report.sites
    assert site.root_url == "old-report.csv"
    [leaf] = site.leaves
    assert leaf.sitemap_url == "old-report.csv"
    assert [r.category for r in leaf.records] == [Category.OK, Category.OK, Category.BROKEN]
    assert leaf.records[2].suggested_url == f"{base}/blog/2020"


@pytest.mark.asyncio()
async def test_cancelled_engine_marks_urls_unresolved(fake_site, audit_config):
    base, _ = fake_site
    async with AuditEngine(audit_config, on_progress=None) as engine:
        engine.cancel()
        leaf = await engine.audit_urls([f"{base}/ok", f"{base}/blog/2020"], "manual")
    assert [r.status_label for r in leaf.records] == [UNRESOLVED, UNRESOLVED]
    assert all(r.category is Category.BROKEN for r in leaf.records)


@pytest.mark.asyncio()
async def test_engine_requires_context_manager(audit_config):
    engine = AuditEngine(audit_config)
    with pytest.raises(RuntimeError):
        await engine.audit_urls(["https://ex.com/"], "manual")


@pytest_asyncio.fixture
async def robots_site(serve_app, xml_builders) -> AsyncIterator[str]:
    urlset, _ = xml_builders
    app = web.Application()
    base_holder: List[str] = []

    async def sitemap(request):
        base = base_holder[0]
        body = urlset(*(f"{base}{p}" for p in ("/open", "/hidden", "/header", "/gone")))
        return web.Response(text=body, content_type="application/xml")

    async def open_page(request):
        return _html("Open")

    async def hidden(request):
        return web.Response(
            text='<html><head><meta name="robots" content="noindex, nofollow"></head>'
            f"<body><p>{LONG_TEXT}</p></body></html>",
            content_type="text/html",
        )

    async def header(request):
        response = _html("Header")
        response.headers["X-Robots-Tag"] = "noindex"
        return response

    app.router.add_get("/sitemap.xml", sitemap)
    app.router.add_get("/open", open_page)
    app.router.add_get("/hidden", hidden)
    app.router.add_get("/header", header)

    base = await serve_app(app)
    base_holder.append(base)
    yield base


@pytest.mark.asyncio()
async def test_meta_robots_check(robots_site, audit_config):
    base = robots_site
    config = audit_config.model_copy(update={"check_meta_robots": True}).with_sitemaps(
        [f"{base}/sitemap.xml"]
    )
    report = await start_scan(config)
    records = _by_url(report.sites[0].leaves[0])

    assert (records[f"{base}/open"].no_index, records[f"{base}/open"].no_follow) == (False, False)
    assert (records[f"{base}/hidden"].no_index, records[f"{base}/hidden"].no_follow) == (True, True)
    assert records[f"{base}/header"].no_index is True
    # broken pages are not fetched for content checks
    assert records[f"{base}/gone"].no_index is None
    assert all(r.category is not Category.SOFT_FAILURE for r in records.values())

    summary = report.summary
    assert (summary.noindex, summary.nofollow) == (2, 1)
    assert records[f"{base}/hidden"].as_row()["noIndex"] is True


@pytest.mark.asyncio()
async def test_meta_robots_check_disabled(robots_site, audit_config):
    report = await start_scan(audit_config.with_sitemaps([f"{robots_site}/sitemap.xml"]))
    leaf = report.sites[0].leaves[0]
    assert all(r.no_index is None and r.no_follow is None for r in leaf.records)
    assert report.summary.noindex == 0


@pytest_asyncio.fixture
async def slow_site(serve_app, xml_builders) -> AsyncIterator[str]:
    urlset, _ = xml_builders
    app = web.Application()
    base_holder: List[str] = []

    async def sitemap(request):
        base = base_holder[0]
        body = urlset(*(f"{base}/slow/{n}" for n in range(4)))
        return web.Response(text=body, content_type="application/xml")

    async def slow(request):
        await asyncio.sleep(0.3)
        return _html("Slow")

    app.router.add_get("/sitemap.xml", sitemap)
    app.router.add_get("/slow/{n}", slow)

    base = await serve_app(app)
    base_holder.append(base)
    yield base


@pytest.mark.asyncio()
async def test_scan_timeout_keeps_finished_results(slow_site, audit_config):
    config = audit_config.model_copy(update={"concurrency": 1}).with_sitemaps(
        [f"{slow_site}/sitemap.xml", f"{slow_site}/sitemap.xml?again=1"]
    )
    report = await start_scan(config, scan_timeout=0.4)

    assert report.interrupted
    first, second = report.sites
    [leaf] = first.leaves
    labels = [r.status_label for r in leaf.records]
    assert labels[0] == "200"
    assert labels[-1] == UNRESOLVED
    # the second root is never started once the audit is cancelled
    assert second.error is not None and second.leaves == []
    assert report.as_dict()["interrupted"] is True


@pytest.mark.asyncio()
async def test_scan_without_timeout_is_not_interrupted(fake_site, audit_config):
    base, _ = fake_site
    report = await start_scan(audit_config.with_sitemaps([f"{base}/pages.xml"]), scan_timeout=30)
    assert not report.interrupted
    assert report.summary.total == 6
