# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from sitefreeze.config import CrawlConfig, load_config
from sitefreeze.errors import ApplicationLoadError
from sitefreeze.loader import load_application


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,suffix,expect_exc",
    [
        ("application: sample_site:app\nparallel: 2", ".yaml", None),
        (json.dumps({"application": "sample_site:app", "parallel": 2}), ".json", None),
        ("{unknown_option: 1}", ".yaml", ValidationError),
        ("parallel: -1", ".yaml", ValidationError),
        ("- a\n- b", ".yaml", TypeError),
        ("key: [unclosed", ".yaml", ValueError),
        ("{not json", ".json", ValueError),
        ("application = 'x'", ".toml", ValueError),
    ],
)
def test_load_config_variants(tmp_path, content, suffix, expect_exc):
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            load_config(cfg_path)
    else:
        cfg = load_config(cfg_path)
        assert isinstance(cfg, CrawlConfig)
        assert cfg.application == "sample_site:app"
        assert cfg.parallel == 2


def test_defaults():
    cfg = load_config(None)
    assert cfg.index == "index.html"
    assert cfg.url == "http://localhost/"
    assert cfg.hosts == ["localhost"]
    assert cfg.follow is True
    assert cfg.parallel == 0
    assert cfg.show_verbose and cfg.show_errors


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_quiet_silences_everything():
    cfg = CrawlConfig(quiet=True, verbose=True, errors=True)
    assert not cfg.show_verbose
    assert not cfg.show_errors


def test_url_host_is_allowed():
    cfg = CrawlConfig(url="https://www.example.com/blog", hosts=["localhost"])
    assert cfg.url == "https://www.example.com/blog/"
    assert cfg.allowed_hosts == ["localhost", "www.example.com"]


@pytest.mark.parametrize("url", ["/relative", "ftp://example.com/", "http://"])
def test_url_must_be_absolute_http(url):
    with pytest.raises(ValidationError):
        CrawlConfig(url=url)


@pytest.mark.parametrize("index", ["a/b.html", ".."])
def test_index_is_a_file_name(index):
    with pytest.raises(ValidationError):
        CrawlConfig(index=index)


def test_config_is_frozen():
    with pytest.raises(ValidationError):
        CrawlConfig().parallel = 3


def test_load_application():
    import sample_site

    assert load_application("sample_site:app") is sample_site.app
    assert load_application("sample_site.app") is sample_site.app


@pytest.mark.parametrize("dotted", ["no_such_module_xyz:app", "sample_site:nothing", "sample_site:HTML", "plainname"])
def test_load_application_errors(dotted):
    with pytest.raises(ApplicationLoadError):
        load_application(dotted)
