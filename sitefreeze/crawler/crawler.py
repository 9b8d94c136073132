# === FILE: sitefreeze/crawler/crawler.py ===
from __future__ import annotations

import logging
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urljoin

from sitefreeze.crawler.coordinator import ParallelCoordinator, Role
from sitefreeze.crawler.link_extractor import links_from
from sitefreeze.crawler.materializer import Materializer
from sitefreeze.crawler.models import CrawlTarget, Response
from sitefreeze.crawler.worklist import Worklist
from sitefreeze.utils import host_regexp

__all__ = ("Visit", "Crawler")

Observer = Callable[[CrawlTarget, Response], None]
LinkExtractor = Callable[[Response, CrawlTarget], Iterable[str]]


@dataclass(slots=True)
class Visit:
    """What happened to one path."""
    url: str
    path: str
    status: int
    file: Optional[str]
    size: Optional[int]

    @classmethod
    def from_response(cls, url: CrawlTarget, response: Response) -> Visit:
        file = response.file
        size = file.stat().st_size if file is not None and file.is_file() else None
        return cls(url.raw, url.path, response.status, str(file) if file else None, size)


class Crawler:
    """Breadth-first crawler feeding a :class:`Materializer`.

    Discovered links go to the back of the queue, ``301`` redirects to the
    front. A path is requested at most once per run; with ``parallel > 1``
    that holds across all worker processes.
    """

    def __init__(
        self,
        materializer: Materializer,
        hosts: Sequence[str] = ("localhost",),
        follow: bool = True,
        parallel: int = 0,
        observers: Iterable[Observer] = (),
        extract_links: LinkExtractor = links_from,
        join: Optional[Callable[[ParallelCoordinator], None]] = None,
    ) -> None:
        self.materializer = materializer
        self.hosts = list(hosts)
        self.follow = follow
        self.observers: List[Observer] = list(observers)
        self.extract_links = extract_links
        self.seen: Dict[str, int] = {}
        self.visits: List[Visit] = []
        self.total = 0
        self.logger = logging.getLogger("SiteFreeze")
        self._host_re = host_regexp(self.hosts)
        self.coordinator: Optional[ParallelCoordinator] = (
            ParallelCoordinator(parallel, join) if parallel > 1 else None
        )

    # ------------------------------------------------------------------ #
    # Entry points                                                       #
    # ------------------------------------------------------------------ #

    def run(self, seeds: Iterable[str] = ()) -> List[Visit]:
        """Crawl from *seeds* (default ``/``) until the queue is empty."""
        seeds = list(seeds)
        return self._run(lambda: self.process(seeds))

    def run_lists(self, urls: Iterable[str]) -> List[Visit]:
        """Crawl each URL of a URL list with a queue of its own."""
        urls = list(urls)

        def work() -> None:
            for url in urls:
                self.process([url])

        return self._run(work)

    def _run(self, work: Callable[[], None]) -> List[Visit]:
        self.logger.info("Crawl started")
        start = time.monotonic()
        try:
            work()
        except Exception:
            if self._in_worker:
                self.logger.exception("Worker %d failed", os.getpid())
                self.coordinator.exit_worker(1, self._published())
            raise
        if self._in_worker:
            self.coordinator.exit_worker(0, self._published())

        if self.coordinator is not None:
            self._finish_parallel()
        else:
            self.total = len(self.seen)
        duration = time.monotonic() - start
        self.logger.info("Finished: %d path(s) in %.2f s", self.total, duration)
        return self.visits

    def _finish_parallel(self) -> None:
        coordinator = self.coordinator
        try:
            coordinator.join()
            self.visits.extend(Visit(**v) for v in coordinator.collect_visits())
            self.total = coordinator.ledger.count()
            self.logger.info("Ledger holds %d distinct path(s)", self.total)
        finally:
            coordinator.close()

    @property
    def _in_worker(self) -> bool:
        return self.coordinator is not None and not self.coordinator.is_parent

    def _published(self) -> List[Dict[str, Any]]:
        return [asdict(v) for v in self.visits]

    # ------------------------------------------------------------------ #
    # Queue processing                                                   #
    # ------------------------------------------------------------------ #

    def process(self, seeds: Iterable[str] = ()) -> None:
        worklist = Worklist(list(seeds) or ["/"], literal=True)

        while worklist:
            target = worklist.pop()
            if not self._host_ok(target):
                self.logger.debug("Skipping %s: host not allowed", target)
                continue
            url = self.materializer.absolute(target)
            if self._has_seen(url.path, worklist):
                continue

            response = self.materializer.get(url)
            self.visits.append(Visit.from_response(url, response))
            for observer in self.observers:
                observer(url, response)

            if response.status == 200 and self.follow:
                worklist.extend(self.extract_links(response, url), seen=self._seen_target)
            elif response.status == 301:
                location = response.header("Location")
                if location:
                    worklist.push_front(urljoin(url.raw, location))

    def is_seen(self, path: str) -> bool:
        return bool(self.seen.get(path))

    def _seen_target(self, target: CrawlTarget) -> bool:
        return self.is_seen(self.materializer.absolute(target).path)

    def _host_ok(self, target: CrawlTarget) -> bool:
        # relative targets resolve against the base URL
        host = target.host
        return host is None or self._host_re.match(host) is not None

    def _has_seen(self, path: str, worklist: Worklist) -> bool:
        """Mark *path* seen and tell whether it was seen before.

        In parallel mode this is also where the ledger is synchronized and
        where the parent forks off new workers.
        """
        coordinator = self.coordinator
        if coordinator is not None:
            coordinator.ledger.sync(self.seen, [path])
            worklist.prune(self._seen_target)
            if coordinator.should_split(worklist):
                role = coordinator.split(worklist)
                if role is Role.PARENT:
                    # the child takes care of path
                    self.seen[path] = self.seen.get(path, 0) + 1
                    return True
                if role is Role.CHILD:
                    self.visits = []

        count = self.seen.get(path, 0)
        self.seen[path] = count + 1
        return count > 0
