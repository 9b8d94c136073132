# File: sitefreeze/aggregator.py
"""sitefreeze.aggregator: summary of a crawl run."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, TypedDict


class VisitInfo(TypedDict, total=False):
    """One visited path."""

    url: str
    path: str
    status: int
    file: Optional[str]
    size: Optional[int]


@dataclass(slots=True)
class CrawlReport:
    """Crawl results: every visit, status counts and the number of distinct paths."""

    visits: List[VisitInfo] = field(default_factory=list)
    statuses: Dict[str, int] = field(default_factory=dict)
    total: int = 0
    destination: str = ""

    @property
    def saved(self) -> List[VisitInfo]:
        return [v for v in self.visits if v.get("file") and v.get("status") == 200]

    @property
    def failed(self) -> List[VisitInfo]:
        return [v for v in self.visits if v.get("status") not in (200, 304)]


def _as_info(visit: Any) -> VisitInfo:
    return VisitInfo(
        url=visit.url,
        path=visit.path,
        status=visit.status,
        file=visit.file,
        size=visit.size,
    )


def aggregate_visits(visits: Iterable[Any], total: Optional[int] = None, destination: str = "") -> CrawlReport:
    """Build a CrawlReport from Visit objects, sorted by path."""
    infos = sorted((_as_info(v) for v in visits), key=lambda v: v.get("path", ""))
    statuses = Counter(str(v.get("status")) for v in infos)
    if total is None:
        total = len({v.get("path") for v in infos})
    return CrawlReport(
        visits=infos,
        statuses=dict(sorted(statuses.items())),
        total=total,
        destination=destination,
    )
