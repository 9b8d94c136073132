# === FILE: sitefreeze/config.py ===
"""
Loading and validation of the SiteFreeze crawl configuration.
Pydantic describes the schema and checks the data.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Union
from urllib.parse import urlsplit, urlunsplit

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

__all__ = ("CrawlConfig", "load_config")


class CrawlConfig(BaseModel):
    """Configuration for one crawl run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    application: Optional[str] = Field(None, description="Import path of the WSGI app (module:attr).")
    destination: Optional[Path] = Field(None, description="Output root; a temporary directory when unset.")
    index: str = Field("index.html", min_length=1, description="File name used for directory URLs.")
    url: str = Field("http://localhost/", description="Base URL the application is mounted at.")
    hosts: List[str] = Field(default_factory=lambda: ["localhost"], description="Allowed host patterns.")
    follow: bool = Field(True, description="Follow links found in 200 responses.")
    parallel: int = Field(0, ge=0, description="Number of worker processes (0 or 1 = serial).")
    verbose: bool = Field(True, description="Print successful visits.")
    errors: bool = Field(True, description="Print failed visits.")
    quiet: bool = Field(False, description="Shortcut for verbose=False, errors=False.")
    environment: str = Field("deployment", description="Exported to the app as SITEFREEZE_ENV.")

    @field_validator("index")
    def _plain_file_name(cls, v: str) -> str:
        if "/" in v or v in (".", ".."):
            raise ValueError(f"index must be a plain file name, got {v!r}")
        return v

    @field_validator("url")
    def _absolute_url(cls, v: str) -> str:
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"url must be an absolute http(s) URL, got {v!r}")
        path = parts.path.rstrip("/") + "/"
        return urlunsplit((parts.scheme, parts.netloc, path, "", ""))

    @property
    def allowed_hosts(self) -> List[str]:
        """Host patterns, including the host of the base URL."""
        host = urlsplit(self.url).hostname
        if host and host not in self.hosts:
            return [*self.hosts, host]
        return list(self.hosts)

    @property
    def show_verbose(self) -> bool:
        return self.verbose and not self.quiet

    @property
    def show_errors(self) -> bool:
        return self.errors and not self.quiet


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlConfig:
    """
    Read YAML or JSON and return a validated CrawlConfig.
    Without a path, the defaults are returned.
    """
    if path is None:
        return CrawlConfig()

    path_obj = Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return CrawlConfig(**data)
