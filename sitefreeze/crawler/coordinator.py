# === FILE: sitefreeze/crawler/coordinator.py ===
"""
Parallel crawling with forked worker processes.

The parent process forks up to ``workers - 1`` children. Each fork hands
the first half of the parent's queue (and the target being examined) to
the child. All processes share a :class:`SeenLedger`, so no path is
materialized twice. Every child owns a liveness marker file in the IPC
directory and removes it when its queue runs dry; the parent waits until
no marker is left, using a pluggable join strategy.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import sys
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from sitefreeze.crawler.ledger import SeenLedger
from sitefreeze.crawler.worklist import Worklist
from sitefreeze.errors import WorkerTimeoutError

__all__ = ("Role", "ParallelCoordinator", "PollingJoin", "BoundedJoin")

logger = logging.getLogger("SiteFreeze")

MARKER_PREFIX = "pid-"
LEDGER_NAME = "__SEEN__"


class Role(Enum):
    """Which side of a fork the caller is on."""

    PARENT = "parent"
    CHILD = "child"


class PollingJoin:
    """Sleep until every liveness marker is gone. Waits forever on a stale marker."""

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval

    def __call__(self, coordinator: ParallelCoordinator) -> None:
        while coordinator.live_markers():
            time.sleep(self.interval)
        coordinator.reap(block=True)


class BoundedJoin:
    """Wait at most *timeout* seconds, and stop early once every child has exited.

    Markers left behind by children that died without cleaning up are removed.
    """

    def __init__(self, timeout: float, interval: float = 0.1) -> None:
        self.timeout = timeout
        self.interval = interval

    def __call__(self, coordinator: ParallelCoordinator) -> None:
        deadline = time.monotonic() + self.timeout
        while True:
            coordinator.reap(block=False)
            markers = coordinator.live_markers()
            if not markers:
                return
            if not coordinator.running:
                for marker in markers:
                    logger.warning("Removing stale worker marker %s", marker.name)
                    marker.unlink(missing_ok=True)
                return
            if time.monotonic() >= deadline:
                raise WorkerTimeoutError([m.name for m in markers])
            time.sleep(self.interval)


class ParallelCoordinator:
    """Forks workers, tracks their liveness markers and joins them."""

    def __init__(
        self,
        workers: int,
        join: Optional[Callable[[ParallelCoordinator], None]] = None,
        ipc_dir: Optional[Path] = None,
    ) -> None:
        self.workers = workers
        self.join_strategy = join or PollingJoin()
        self.ipc_dir = Path(ipc_dir) if ipc_dir else Path(tempfile.mkdtemp(prefix="sitefreeze-"))
        self.ipc_dir.mkdir(parents=True, exist_ok=True)
        self.ledger = SeenLedger(self.ipc_dir / LEDGER_NAME)
        self.parent = os.getpid()
        self.forked = 0
        self.marker: Optional[Path] = None
        # pid -> exit status, None while running
        self.children: Dict[int, Optional[int]] = {}

    # ------------------------------------------------------------------ #
    # Forking                                                            #
    # ------------------------------------------------------------------ #

    @property
    def is_parent(self) -> bool:
        return os.getpid() == self.parent

    def should_split(self, worklist: Worklist) -> bool:
        return bool(worklist) and self.is_parent and self.forked < self.workers - 1

    def _new_marker(self) -> Path:
        fd, name = tempfile.mkstemp(prefix=f"{MARKER_PREFIX}{self.forked + 1}-", dir=self.ipc_dir)
        os.close(fd)
        return Path(name)

    def split(self, worklist: Worklist) -> Optional[Role]:
        """Fork a worker that takes the first half of *worklist*.

        Returns :attr:`Role.PARENT` or :attr:`Role.CHILD` depending on the
        side of the fork, or None when the fork failed and the queue was
        left intact.
        """
        seed = worklist.split()
        marker = self._new_marker()
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            pid = os.fork()
        except OSError as exc:
            logger.warning("Couldn't fork: %s", exc)
            marker.unlink(missing_ok=True)
            worklist.restore(seed)
            return None

        if pid == 0:
            self.marker = marker
            self.children = {}
            self.ledger.reopen()
            worklist.assign(seed)
            logger.debug("Worker %d started with %d queued target(s)", os.getpid(), len(seed))
            return Role.CHILD

        self.forked += 1
        self.children[pid] = None
        logger.debug("Forked worker %d (%d/%d)", pid, self.forked, self.workers - 1)
        return Role.PARENT

    def exit_worker(self, status: int, visits: Optional[List[Dict[str, Any]]] = None) -> None:
        """Leave a worker process: publish its visits, drop its marker, exit."""
        try:
            if visits is not None:
                out = self.ipc_dir / f"visits-{os.getpid()}.json"
                out.write_text(json.dumps(visits), encoding="utf-8")
            self.ledger.close()
        finally:
            if self.marker is not None:
                self.marker.unlink(missing_ok=True)
            sys.stdout.flush()
            sys.stderr.flush()
            os._exit(status)

    # ------------------------------------------------------------------ #
    # Joining                                                            #
    # ------------------------------------------------------------------ #

    def live_markers(self) -> List[Path]:
        return sorted(self.ipc_dir.glob(f"{MARKER_PREFIX}*"))

    @property
    def running(self) -> List[int]:
        return [pid for pid, status in self.children.items() if status is None]

    def reap(self, block: bool = False) -> None:
        """Collect exit statuses of finished workers."""
        for pid in self.running:
            try:
                done, status = os.waitpid(pid, 0 if block else os.WNOHANG)
            except ChildProcessError:
                self.children[pid] = 0
                continue
            if done == 0:
                continue
            code = os.waitstatus_to_exitcode(status)
            self.children[pid] = code
            if code != 0:
                logger.warning("Worker %d exited with status %d", pid, code)

    def join(self) -> None:
        if not self.is_parent:
            return
        self.join_strategy(self)

    def collect_visits(self) -> List[Dict[str, Any]]:
        """Visits published by the workers that have exited."""
        visits: List[Dict[str, Any]] = []
        for file in sorted(self.ipc_dir.glob("visits-*.json")):
            visits.extend(json.loads(file.read_text(encoding="utf-8")))
        return visits

    def close(self) -> None:
        self.ledger.close()
        shutil.rmtree(self.ipc_dir, ignore_errors=True)
