# File: sitefreeze/errors.py
"""Exception hierarchy for SiteFreeze.

Per-page failures (application crashes, file/directory conflicts) are not
exceptions: the materializer reports them through the response status.
Only the conditions below escape to the caller.
"""
from __future__ import annotations

__all__ = (
    "SiteFreezeError",
    "ApplicationLoadError",
    "LedgerLockError",
    "WorkerTimeoutError",
)


class SiteFreezeError(Exception):
    """Base class for all SiteFreeze errors."""


class ApplicationLoadError(SiteFreezeError):
    """The WSGI application could not be imported."""


class LedgerLockError(SiteFreezeError):
    """The shared seen ledger could not be opened, locked or unlocked.

    Fatal to the worker process that hits it.
    """


class WorkerTimeoutError(SiteFreezeError):
    """A bounded join gave up waiting for parallel workers."""

    def __init__(self, pending: list[str]) -> None:
        super().__init__(f"{len(pending)} worker(s) still running: {', '.join(pending)}")
        self.pending = pending
