# File: tests/conftest.py
import socket
from collections.abc import AsyncIterator
from typing import Awaitable, Callable, Dict, List, Tuple

import pytest
import pytest_asyncio
from aiohttp import web

from sitemap_scout.config import AuditConfig


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture()
def unused_tcp_port() -> int:
    """Port with nothing listening on it (at the time of the call)."""
    return _free_port()


@pytest.fixture()
def closed_port() -> int:
    """A second free port, used as a target that refuses connections."""
    return _free_port()


@pytest_asyncio.fixture
async def serve_app(unused_tcp_port: int) -> AsyncIterator[Callable[[web.Application], Awaitable[str]]]:
    """Factory: start an app on a free local port and return its base URL; cleaned up after the test."""
    runners: List[web.AppRunner] = []

    async def _start(app: web.Application) -> str:
        runner = web.AppRunner(app)
        await runner.setup()
        runners.append(runner)
        site = web.TCPSite(runner, "127.0.0.1", unused_tcp_port)
        await site.start()
        return f"http://127.0.0.1:{unused_tcp_port}"

    try:
        yield _start
    finally:
        for runner in runners:
            await runner.cleanup()


@pytest_asyncio.fixture
async def sitemap_server(serve_app) -> AsyncIterator[Tuple[str, Dict[str, tuple]]]:
    """
    Generic document server.

    Tests fill the returned ``docs`` mapping with ``path -> (body, content_type)``
    after the server is up; a key with a query string (``/p.xml?page=2``)
    takes precedence over the bare path. Unknown paths answer 404.
    """
    docs: Dict[str, tuple] = {}
    app = web.Application()

    async def handle(request: web.Request) -> web.Response:
        entry = docs.get(request.path_qs) or docs.get(request.path)
        if entry is None:
            return web.Response(status=404, text="not here")
        body, content_type = entry
        if isinstance(body, str):
            body = body.encode("utf-8")
        return web.Response(body=body, content_type=content_type)

    app.router.add_get("/{tail:.*}", handle)

    base = await serve_app(app)
    yield base, docs


@pytest.fixture()
def audit_config() -> AuditConfig:
    """Fast config for network tests: no backoff sleeps, short timeouts."""
    return AuditConfig(
        concurrency=5,
        timeout=2.0,
        user_agent="TestAgent/1.0",
        retry_times=2,
        backoff_base=0,
        backoff_cap=0,
        progress_step=50,
    )


def urlset(*urls: str) -> str:
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemap_index(*urls: str) -> str:
    entries = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


@pytest.fixture()
def xml_builders():
    """``(urlset, sitemap_index)`` document builders."""
    return urlset, sitemap_index
