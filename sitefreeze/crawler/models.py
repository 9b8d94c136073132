# sitefreeze/crawler/models.py
"""
Data models for the SiteFreeze crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import SplitResult, urlsplit

__all__ = ("CONFLICT", "CrawlTarget", "Response")

#: Not an HTTP status: the destination clashes with an existing file or directory.
CONFLICT = 999


@dataclass(frozen=True, slots=True)
class CrawlTarget:
    """A unit of crawl work: an operator-supplied literal or a discovered URL."""

    raw: str
    literal: bool = False

    @property
    def parts(self) -> SplitResult:
        return urlsplit(self.raw)

    @property
    def path(self) -> str:
        """Dedup key. Host and scheme are ignored."""
        return self.parts.path or "/"

    @property
    def query(self) -> str:
        return self.parts.query

    @property
    def host(self) -> Optional[str]:
        """Host as written; ``SplitResult.hostname`` would lowercase it."""
        netloc = self.parts.netloc.rsplit("@", 1)[-1]
        if netloc.startswith("["):
            return netloc[1:netloc.find("]")] or None
        return netloc.split(":", 1)[0] or None

    @property
    def scheme(self) -> str:
        return self.parts.scheme

    def __str__(self) -> str:
        return self.raw


@dataclass(slots=True)
class Response:
    """Outcome of one visit: status, headers and the file written (if any)."""

    status: int
    headers: List[Tuple[str, str]] = field(default_factory=list)
    file: Optional[Path] = None

    def header(self, name: str) -> Optional[str]:
        """First value of header *name* (case-insensitive), or None."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    @property
    def content_type(self) -> str:
        return (self.header("Content-Type") or "").split(";", 1)[0].strip().lower()
