# sitefreeze/crawler/ledger.py
"""
Seen ledger shared by parallel workers.

An append-only file of URL paths, one per line. Every access happens under
an exclusive :func:`fcntl.flock`, held only for the read-then-append step.
Each process keeps its own read offset, so it only ever reads the entries
appended since its last visit.
"""
from __future__ import annotations

import fcntl
import logging
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Union

from sitefreeze.errors import LedgerLockError

__all__ = ("SeenLedger",)

logger = logging.getLogger("SiteFreeze")


class SeenLedger:
    """Lock-protected, append-only record of visited paths."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._fh: Optional[BinaryIO] = None
        self._offset = 0

    def _open(self) -> BinaryIO:
        if self._fh is None:
            try:
                self._fh = self.path.open("a+b")
            except OSError as exc:
                raise LedgerLockError(f"Can't open {self.path} in read-write mode: {exc}") from exc
        return self._fh

    def reopen(self) -> None:
        """Get a private file description (after a fork) and re-read from the start.

        flock() locks belong to the open file description, which a forked
        child shares with its parent until it opens the file again.
        """
        if self._fh is not None:
            self._fh.close()
        self._fh = None
        self._offset = 0

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _lock(self, fh: BinaryIO) -> None:
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        except OSError as exc:
            raise LedgerLockError(f"Cannot lock {self.path}: {exc}") from exc

    def _unlock(self, fh: BinaryIO) -> None:
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        except OSError as exc:
            raise LedgerLockError(f"Cannot unlock {self.path}: {exc}") from exc

    def sync(self, seen: Dict[str, int], pending: Iterable[str] = ()) -> List[str]:
        """Merge new ledger entries into *seen*, then append the *pending* paths it lacks.

        Returns the paths read from the ledger.
        """
        fh = self._open()
        self._lock(fh)
        try:
            fh.seek(self._offset)
            data = fh.read()
            read = [line.decode("utf-8") for line in data.splitlines() if line]
            for path in read:
                seen[path] = seen.get(path, 0) + 1
            for path in pending:
                if not seen.get(path):
                    fh.write(path.encode("utf-8") + b"\n")
            fh.flush()
            self._offset = fh.tell()
        except OSError as exc:
            raise LedgerLockError(f"Cannot update {self.path}: {exc}") from exc
        finally:
            self._unlock(fh)
        if read:
            logger.debug("Ledger: merged %d path(s) from other workers", len(read))
        return read

    def entries(self) -> List[str]:
        """Every path recorded so far, in append order."""
        fh = self._open()
        self._lock(fh)
        try:
            fh.seek(0)
            data = fh.read()
        finally:
            self._unlock(fh)
        return [line.decode("utf-8") for line in data.splitlines() if line]

    def count(self) -> int:
        return len(set(self.entries()))
