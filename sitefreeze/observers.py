# File: sitefreeze/observers.py
"""Post-visit observers printing the crawl listing."""

from __future__ import annotations

from typing import List

import click

from sitefreeze.crawler.crawler import Observer
from sitefreeze.crawler.models import CrawlTarget, Response

__all__ = ("print_errors", "print_verbose", "default_observers")


def print_errors(url: CrawlTarget, response: Response) -> None:
    """``404 /missing`` for everything that is not a 200."""
    if response.status == 200:
        return
    click.echo(f"{response.status} {url.path}")


def print_verbose(url: CrawlTarget, response: Response) -> None:
    """``200 /page => out/page [1234]`` for every 200."""
    if response.status != 200:
        return
    line = f"{response.status} {url.path}"
    if response.file is not None:
        line += f" => {response.file} [{response.file.stat().st_size}]"
    click.echo(line)


def default_observers(*, errors: bool, verbose: bool) -> List[Observer]:
    observers: List[Observer] = []
    if errors:
        observers.append(print_errors)
    if verbose:
        observers.append(print_verbose)
    return observers
