# sitefreeze/crawler/link_extractor.py
"""
Link extraction from materialized responses.

Reads the file a 200 response was saved to and returns every http(s) URL
referenced by it, resolved against the page URL, fragments removed.
HTML is parsed with BeautifulSoup; CSS (stylesheets, ``<style>`` blocks
and ``style`` attributes) is scanned for ``url(...)`` and ``@import``.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Union
from urllib.parse import urldefrag, urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from sitefreeze.crawler.models import CrawlTarget, Response

__all__ = ("links_from", "links_in_html", "links_in_css")

# tag -> attributes holding a URL
_LINK_ATTRS = {
    "a": ("href",),
    "area": ("href",),
    "link": ("href",),
    "img": ("src",),
    "script": ("src",),
    "iframe": ("src",),
    "frame": ("src",),
    "embed": ("src",),
    "source": ("src",),
    "audio": ("src",),
    "video": ("src", "poster"),
    "input": ("src",),
    "object": ("data",),
    "form": ("action",),
    "body": ("background",),
}

_CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)([^'")]+?)\1\s*\)""", re.IGNORECASE)
_CSS_IMPORT_RE = re.compile(r"""@import\s+(['"])([^'"]+)\1""", re.IGNORECASE)
_REFRESH_RE = re.compile(r"""url\s*=\s*['"]?([^'";]+)""", re.IGNORECASE)


def links_in_css(text: str) -> List[str]:
    """Raw references found in CSS source."""
    found = [m.group(2) for m in _CSS_URL_RE.finditer(text)]
    found.extend(m.group(2) for m in _CSS_IMPORT_RE.finditer(text))
    return found


def links_in_html(text: Union[str, bytes]) -> List[str]:
    """Raw references found in an HTML document, in document order."""
    soup = BeautifulSoup(text, "html.parser")
    found: List[str] = []
    for tag in soup.find_all(True):
        if not isinstance(tag, Tag):
            continue
        for attr in _LINK_ATTRS.get(tag.name, ()):
            value = tag.get(attr)
            if isinstance(value, str) and value.strip():
                found.append(value.strip())
        if tag.name == "img":
            srcset = tag.get("srcset")
            if isinstance(srcset, str):
                found.extend(item.split()[0] for item in srcset.split(",") if item.strip())
        if tag.name == "meta" and str(tag.get("http-equiv", "")).lower() == "refresh":
            match = _REFRESH_RE.search(str(tag.get("content", "")))
            if match:
                found.append(match.group(1).strip())
        if tag.name == "style":
            found.extend(links_in_css(tag.string or ""))
        style = tag.get("style")
        if isinstance(style, str):
            found.extend(links_in_css(style))
    return found


def _absolute(refs: Iterable[str], base: str) -> List[str]:
    links: List[str] = []
    for raw in refs:
        if raw.startswith(("mailto:", "javascript:", "data:", "#")):
            continue
        absolute, _ = urldefrag(urljoin(base, raw))
        if urlsplit(absolute).scheme in ("http", "https"):
            links.append(absolute)
    return links


def links_from(response: Response, url: Union[CrawlTarget, str]) -> List[str]:
    """
    Extract the links of a materialized response.

    Returns an empty list when nothing was written or the content type
    carries no links.
    """
    if response.file is None or not response.file.is_file():
        return []
    base = url.raw if isinstance(url, CrawlTarget) else url
    ctype = response.content_type
    if ctype in ("text/html", "application/xhtml+xml"):
        return _absolute(links_in_html(response.file.read_bytes()), base)
    if ctype == "text/css":
        return _absolute(links_in_css(response.file.read_text(encoding="utf-8", errors="replace")), base)
    return []
