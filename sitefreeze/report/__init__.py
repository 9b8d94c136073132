# File: sitefreeze/report/__init__.py
"""sitefreeze.report: JSON and HTML crawl reports used by the CLI."""

from __future__ import annotations

from sitefreeze.report.html_report import DEFAULT_TEMPLATES, render_html
from sitefreeze.report.json_report import render_json

__all__ = ["render_json", "render_html", "DEFAULT_TEMPLATES"]
