from __future__ import annotations

import importlib
from typing import Any, Callable

from sitefreeze.errors import ApplicationLoadError


def load_application(dotted: str) -> Callable[..., Any]:
    """
    Load a WSGI application from a dotted path.
    Supports both "package.module:app" and "package.module.app".
    """
    if ":" in dotted:
        module_name, symbol_name = dotted.split(":", 1)
    elif "." in dotted:
        module_name, symbol_name = dotted.rsplit(".", 1)
    else:
        raise ApplicationLoadError(f"Not an import path: {dotted!r} (expected 'module:attr')")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ApplicationLoadError(f"Cannot import {module_name}: {exc}") from exc

    try:
        app = getattr(module, symbol_name)
    except AttributeError as exc:
        raise ApplicationLoadError(f"{module_name} has no attribute {symbol_name!r}") from exc

    if not callable(app):
        raise ApplicationLoadError(f"{dotted} is not callable")
    return app
