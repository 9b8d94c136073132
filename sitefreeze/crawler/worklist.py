# sitefreeze/crawler/worklist.py
"""
The crawl queue.

FIFO for discovered links, with redirects pushed at the front. A split
hands the first half to a new owner as an independent object.
"""
from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Optional, Union

from sitefreeze.crawler.models import CrawlTarget

__all__ = ("Worklist",)

TargetLike = Union[CrawlTarget, str]


def _coerce(item: TargetLike, literal: bool) -> CrawlTarget:
    return item if isinstance(item, CrawlTarget) else CrawlTarget(item, literal=literal)


class Worklist:
    """Ordered crawl targets."""

    def __init__(self, items: Iterable[TargetLike] = (), literal: bool = False) -> None:
        self._items: List[CrawlTarget] = [_coerce(i, literal) for i in items]

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[CrawlTarget]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"Worklist({[t.raw for t in self._items]!r})"

    def pop(self) -> CrawlTarget:
        return self._items.pop(0)

    def push_front(self, item: TargetLike) -> None:
        self._items.insert(0, _coerce(item, literal=False))

    def extend(self, items: Iterable[TargetLike], seen: Optional[Callable[[CrawlTarget], bool]] = None) -> None:
        """Append *items* at the back, then deduplicate and drop seen paths."""
        self._items.extend(_coerce(i, literal=False) for i in items)
        self.prune(seen)

    def prune(self, seen: Optional[Callable[[CrawlTarget], bool]] = None) -> None:
        """Remove duplicates (first occurrence wins) and discovered targets already seen.

        Literal seeds stay: they are checked when popped.
        """
        unique = {}
        for target in self._items:
            if target.raw in unique:
                continue
            if seen is not None and not target.literal and seen(target):
                continue
            unique[target.raw] = target
        self._items = list(unique.values())

    def split(self) -> Worklist:
        """Move the first half of the queue into a new worklist and return it."""
        half = len(self._items) // 2
        taken = Worklist(self._items[:half])
        self._items = self._items[half:]
        return taken

    def restore(self, other: Worklist) -> None:
        """Undo a :meth:`split`: put *other* back in front."""
        self._items[:0] = other._items
        other._items = []

    def assign(self, other: Worklist) -> None:
        """Replace the contents with a copy of *other*."""
        self._items = list(other._items)
