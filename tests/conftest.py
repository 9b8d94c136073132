# File: tests/conftest.py
from pathlib import Path

import pytest

from sitefreeze.crawler.materializer import Materializer
from sample_site import SiteApp, site_pages


@pytest.fixture()
def destination(tmp_path) -> Path:
    """
    Empty output directory for a crawl.
    """
    dest = tmp_path / "site"
    dest.mkdir()
    return dest


@pytest.fixture()
def site_app() -> SiteApp:
    """
    A fresh sample site with call recording.
    """
    return SiteApp(site_pages())


@pytest.fixture()
def make_materializer(destination):
    """
    Build a Materializer writing under the destination fixture.
    """

    def _make(app, **kwargs) -> Materializer:
        return Materializer(app, destination, **kwargs)

    return _make
