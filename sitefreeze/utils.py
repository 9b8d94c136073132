# File: sitefreeze/utils.py
"""sitefreeze.utils: helpers for host patterns, URL lists and output directories."""

from __future__ import annotations

import re
import sys
import tempfile
from pathlib import Path
from typing import IO, Iterable, List, Optional, Sequence, Union

from sitefreeze.logger import logger

__all__: Sequence[str] = (
    "host_regexp",
    "read_url_list",
    "read_url_lists",
    "resolve_destination",
)


def host_regexp(patterns: Iterable[str]) -> re.Pattern[str]:
    """Compile host patterns (``*`` matches anything) into one anchored regexp.

    Matching is case-sensitive.
    """
    alternatives = [re.escape(p).replace(r"\*", ".*") for p in patterns]
    regexp = re.compile(r"^(?:%s)$" % "|".join(alternatives)) if alternatives else re.compile(r"(?!)")
    logger.debug("Host pattern: %s", regexp.pattern)
    return regexp


def read_url_list(stream: IO[str]) -> List[str]:
    """Non-blank lines of *stream*, without ``#`` comments."""
    urls: List[str] = []
    for line in stream:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        urls.append(line)
    return urls


def read_url_lists(files: Iterable[Union[str, Path]]) -> List[str]:
    """URLs from every file in *files* (``-`` is stdin); stdin when *files* is empty."""
    files = list(files) or ["-"]
    urls: List[str] = []
    for name in files:
        if str(name) == "-":
            urls.extend(read_url_list(sys.stdin))
            continue
        p = Path(name)
        if not p.is_file():
            logger.error("URL list not found: %s", p)
            raise FileNotFoundError(f"URL list file not found: {p}")
        with p.open(encoding="utf-8") as fh:
            urls.extend(read_url_list(fh))
    logger.debug("Loaded %d URL(s) from %d list(s)", len(urls), len(files))
    return urls


def resolve_destination(path: Optional[Union[str, Path]]) -> Path:
    """Expand ``~`` and create the directory; a fresh temporary directory when *path* is None."""
    if path is None:
        p = Path(tempfile.mkdtemp(prefix="sitefreeze-site-"))
        logger.info("No destination given, writing to %s", p)
        return p
    p = Path(path).expanduser()
    p.mkdir(parents=True, exist_ok=True)
    return p
