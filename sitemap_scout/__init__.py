# sitemap_scout/__init__.py
"""
SitemapScout package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

# Expose CLI entry point as main_cli: the attribute ``cli`` stays the submodule,
# so ``import sitemap_scout.cli`` (and monkeypatching it) gets the module itself
from .cli import cli as main_cli
