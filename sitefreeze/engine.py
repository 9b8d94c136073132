# File: sitefreeze/engine.py
"""sitefreeze.engine: wires configuration, application and crawler together."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Sequence

from sitefreeze.aggregator import CrawlReport, aggregate_visits
from sitefreeze.config import CrawlConfig
from sitefreeze.crawler.coordinator import ParallelCoordinator
from sitefreeze.crawler.crawler import Crawler, Observer
from sitefreeze.crawler.materializer import Materializer
from sitefreeze.errors import ApplicationLoadError
from sitefreeze.loader import load_application
from sitefreeze.logger import logger
from sitefreeze.observers import default_observers
from sitefreeze.utils import read_url_lists, resolve_destination

__all__ = ["Engine"]


class Engine:
    """Facade for the CLI and tests: build a crawler from a config, run it, summarize."""

    def __init__(
        self,
        config: CrawlConfig,
        application: Optional[Callable[..., Any]] = None,
        observers: Optional[Iterable[Observer]] = None,
        join: Optional[Callable[[ParallelCoordinator], None]] = None,
    ) -> None:
        self.config = config
        self.application = application
        self.observers = observers
        self.join = join

    def _application(self) -> Callable[..., Any]:
        if self.application is not None:
            return self.application
        if not self.config.application:
            raise ApplicationLoadError("Option application is required")
        return load_application(self.config.application)

    def build_crawler(self) -> Crawler:
        cfg = self.config
        observers: List[Observer] = list(self.observers) if self.observers is not None else []
        observers += default_observers(errors=cfg.show_errors, verbose=cfg.show_verbose)

        materializer = Materializer(
            self._application(),
            resolve_destination(cfg.destination),
            index=cfg.index,
            url=cfg.url,
            environ={"SITEFREEZE_ENV": cfg.environment},
            multiprocess=cfg.parallel > 1,
        )
        return Crawler(
            materializer,
            hosts=cfg.allowed_hosts,
            follow=cfg.follow,
            parallel=cfg.parallel,
            observers=observers,
            join=self.join,
        )

    def start_crawl(self, args: Sequence[str] = (), files: bool = False) -> CrawlReport:
        """Crawl *args*: seed URLs, or URL list files when *files* is set."""
        crawler = self.build_crawler()
        logger.info("Crawling %s into %s", self.config.url, crawler.materializer.destination)
        if files:
            visits = crawler.run_lists(read_url_lists(args))
        else:
            visits = crawler.run(args)
        return aggregate_visits(visits, crawler.total, str(crawler.materializer.destination))
