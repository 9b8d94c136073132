# === FILE: sitefreeze/crawler/materializer.py ===
"""
Response materializer: runs the WSGI application for one URL and stores
the body under the destination root.

Outcomes are reported through :class:`Response.status`:

* ``200`` – the body was written to :attr:`Response.file`;
* ``304`` – the file from the previous visit is still current;
* ``500`` – the application raised (or produced an unusable body);
* ``999`` – the file would clash with a directory, or the other way round;
* anything else – passed through from the application, nothing written.
"""
from __future__ import annotations

import io
import logging
import os
import sys
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import quote, unquote, urljoin, urlsplit, urlunsplit

from sitefreeze.crawler.body import Body, FileWrapper
from sitefreeze.crawler.models import CONFLICT, CrawlTarget, Response

__all__ = ("canonical_path", "target_path", "Materializer")

logger = logging.getLogger("SiteFreeze")

WSGIApp = Callable[[Dict[str, Any], Callable[..., Any]], Any]

# characters left unescaped inside a path segment
_SEGMENT_SAFE = "!$&'()*+,;=:@~"


def canonical_path(path: str) -> str:
    """Percent-encode every segment of *path* the same way.

    ``/a b`` and ``/a%20b`` both become ``/a%20b``. An encoded ``%2F`` stays
    inside its segment.
    """
    return "/".join(quote(unquote(s), safe=_SEGMENT_SAFE) for s in (path or "/").split("/"))


def target_path(
    path: str,
    destination: Union[str, Path],
    index: str = "index.html",
    mount: str = "/",
) -> Path:
    """Map a URL path to a file under *destination*.

    A path ending in ``/`` gets *index* appended; any other path is used as
    is. *mount* is the path the application is mounted at and is stripped
    first. ``.`` and ``..`` segments are dropped so the result never leaves
    *destination*.
    """
    if mount != "/" and (path + "/").startswith(mount):
        path = "/" + path[len(mount):]
    segments = [unquote(s) for s in path.split("/")]
    if not segments or segments[-1] == "":
        segments.append(index)
    parts = [s for s in segments if s not in ("", ".", "..")]
    return Path(destination).joinpath(*parts)


class _Resumed:
    """Application iterable whose first chunks were pulled early."""

    def __init__(self, head: List[Any], rest: Iterator[Any], original: Any) -> None:
        self.head = head
        self.rest = rest
        self.original = original

    def __iter__(self) -> Iterator[Any]:
        yield from self.head
        yield from self.rest

    def close(self) -> None:
        close = getattr(self.original, "close", None)
        if callable(close):
            close()


class Materializer:
    """Turns application responses into files under *destination*."""

    def __init__(
        self,
        application: WSGIApp,
        destination: Union[str, Path],
        index: str = "index.html",
        url: str = "http://localhost/",
        environ: Optional[Dict[str, Any]] = None,
        multiprocess: bool = False,
    ) -> None:
        self.application = application
        self.destination = Path(destination)
        self.index = index
        self.url = url
        self.base = urlsplit(url)
        self.environ = dict(environ or {})
        self.multiprocess = multiprocess
        # path -> Last-Modified value of its last 200 response
        self.last_modified: Dict[str, str] = {}

    # ------------------------------------------------------------------ #
    # Path mapping                                                       #
    # ------------------------------------------------------------------ #

    @property
    def mount(self) -> str:
        return self.base.path.rstrip("/") + "/"

    def target(self, target: Union[CrawlTarget, str]) -> Path:
        path = target.path if isinstance(target, CrawlTarget) else urlsplit(target).path or "/"
        return target_path(path, self.destination, self.index, self.mount)

    def absolute(self, target: Union[CrawlTarget, str]) -> CrawlTarget:
        """Resolve *target* against the base URL and normalize its path.

        Dot segments are removed and percent-encoding is made uniform, so
        two spellings of one resource give the same :attr:`CrawlTarget.path`.
        The fragment is dropped.
        """
        raw = target.raw if isinstance(target, CrawlTarget) else target
        literal = target.literal if isinstance(target, CrawlTarget) else False
        parts = urlsplit(urljoin(self.url, raw))
        url = urlunsplit(parts._replace(path=canonical_path(parts.path), fragment=""))
        return CrawlTarget(url, literal=literal)

    # ------------------------------------------------------------------ #
    # Request                                                            #
    # ------------------------------------------------------------------ #

    def build_environ(self, target: CrawlTarget) -> Dict[str, Any]:
        path = target.path
        mount = self.mount.rstrip("/")
        if mount and (path == mount or path.startswith(mount + "/")):
            script_name, path_info = mount, path[len(mount):]
        else:
            script_name, path_info = "", path
        port = self.base.port or (443 if self.base.scheme == "https" else 80)
        host = self.base.hostname or "localhost"

        environ: Dict[str, Any] = dict(os.environ)
        environ.update(
            {
                "wsgi.version": (1, 0),
                "wsgi.url_scheme": self.base.scheme or "http",
                "wsgi.input": io.BytesIO(b""),
                "wsgi.errors": sys.stderr,
                "wsgi.multithread": False,
                "wsgi.multiprocess": self.multiprocess,
                "wsgi.run_once": False,
                "wsgi.file_wrapper": FileWrapper,
            }
        )
        environ.update(self.environ)
        environ.update(
            {
                "REQUEST_METHOD": "GET",
                "SCRIPT_NAME": unquote(script_name),
                "PATH_INFO": unquote(path_info),
                "QUERY_STRING": target.query,
                "REQUEST_URI": path + (f"?{target.query}" if target.query else ""),
                "SERVER_NAME": host,
                "SERVER_PORT": str(port),
                "SERVER_PROTOCOL": "HTTP/1.1",
                "HTTP_HOST": self.base.netloc or host,
                "CONTENT_LENGTH": "0",
            }
        )
        token = self.last_modified.get(path)
        if token:
            environ["HTTP_IF_MODIFIED_SINCE"] = token
        return environ

    def _call(self, environ: Dict[str, Any]) -> Tuple[int, List[Tuple[str, str]], Body]:
        started: List[Any] = []
        written: List[bytes] = []
        # headers count as sent once the status is handed back or write() is used
        sent: List[bool] = []

        def write(data: bytes) -> None:
            sent.append(True)
            written.append(data)

        def start_response(status: str, headers: List[Tuple[str, str]], exc_info: Any = None):
            if started and not exc_info:
                raise RuntimeError("start_response called twice without exc_info")
            if exc_info and sent:
                raise exc_info[1].with_traceback(exc_info[2])
            started[:] = [status, list(headers)]
            return write

        result = self.application(environ, start_response)
        if not started:
            # start_response may be deferred to the first iteration
            rest = iter(result)
            head: List[Any] = []
            try:
                while not started:
                    head.append(next(rest))
            except StopIteration:
                pass
            except Exception:
                Body(result).close()
                raise
            result = _Resumed(head, rest, result)
            if not started:
                Body(result).close()
                raise RuntimeError("application never called start_response")

        sent.append(True)
        status_line, headers = started
        status = int(str(status_line).split(None, 1)[0])
        return status, headers, Body(result, prefix=written)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def get(self, target: Union[CrawlTarget, str]) -> Response:
        """Request *target* from the application and materialize the response."""
        if not isinstance(target, CrawlTarget):
            target = CrawlTarget(target)
        target = self.absolute(target)
        path = target.path

        try:
            status, headers, body = self._call(self.build_environ(target))
        except Exception:
            logger.warning("Application failed on %s", path, exc_info=True)
            return Response(500)

        with body:
            if status == 304:
                file = self.target(target)
                return Response(status, headers, file if file.is_file() else None)
            if status != 200:
                return Response(status, headers)
            return self._write(target, status, headers, body)

    def _write(self, target: CrawlTarget, status: int, headers: List[Tuple[str, str]], body: Body) -> Response:
        file = self.target(target)
        if self._conflicts(file):
            logger.warning("Conflict: cannot save %s as %s", target.path, file)
            return Response(CONFLICT, headers)

        try:
            file.parent.mkdir(parents=True, exist_ok=True)
            fh = file.open("wb")
        except OSError as exc:
            logger.warning("Can't open %s for writing: %s", file, exc)
            return Response(CONFLICT, headers)

        try:
            with fh:
                for chunk in body:
                    fh.write(chunk)
        except Exception:
            logger.warning("Application failed while sending %s", target.path, exc_info=True)
            file.unlink(missing_ok=True)
            return Response(500, headers)

        response = Response(status, headers, file)
        last_modified = response.header("Last-Modified")
        if last_modified:
            self.last_modified[target.path] = last_modified
            self._touch(file, last_modified)
        return response

    def _conflicts(self, file: Path) -> bool:
        """A directory sits where the file goes, or a file where a directory goes."""
        if file.is_dir():
            return True
        for parent in file.parents:
            if parent == self.destination or self.destination not in parent.parents:
                break
            if parent.exists() and not parent.is_dir():
                return True
        return False

    @staticmethod
    def _touch(file: Path, last_modified: str) -> None:
        try:
            stamp = parsedate_to_datetime(last_modified).timestamp()
        except (TypeError, ValueError):
            logger.debug("Unparsable Last-Modified %r for %s", last_modified, file)
            return
        os.utime(file, (stamp, stamp))
