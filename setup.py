# setup.py
from setuptools import setup, find_packages

setup(
    name="sitemap_scout",
    version="0.1.0",
    description="Асинхронный аудит sitemap SitemapScout",
    packages=find_packages(exclude=["tests", "tests.*"]),  # найдёт sitemap_scout и подпакеты
    package_data={"sitemap_scout.report": ["templates/*.j2"]},
    install_requires=[
        "aiohttp",
        "beautifulsoup4",
        "lxml",
        "pydantic>=2",
        "PyYAML",
        "click",
        "Jinja2",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
    entry_points={
        "console_scripts": ["sitemap-scout=sitemap_scout.cli:cli"],
    },
    python_requires=">=3.11",
)
