# File: tests/test_materializer.py
"""Tests for the path mapper and the response materializer."""
import io
import os
import sys
from email.utils import formatdate
from pathlib import Path

import pytest

from sitefreeze.crawler.models import CONFLICT, CrawlTarget
from sitefreeze.crawler.materializer import canonical_path, target_path
from sample_site import HTML, TEXT, SiteApp


# --------------------------------------------------------------------------- #
#                                Path mapper                                  #
# --------------------------------------------------------------------------- #


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/", "index.html"),
        ("/foo/", "foo/index.html"),
        ("/foo", "foo"),
        ("/foo/bar.css", "foo/bar.css"),
        ("/a%20b/c", "a b/c"),
        ("/../../etc/passwd", "etc/passwd"),
    ],
)
def test_target_path(tmp_path, path, expected):
    assert target_path(path, tmp_path) == tmp_path / expected


def test_target_path_custom_index(tmp_path):
    assert target_path("/docs/", tmp_path, index="default.htm") == tmp_path / "docs" / "default.htm"


def test_target_path_strips_mount(tmp_path):
    assert target_path("/app/page", tmp_path, mount="/app/") == tmp_path / "page"
    assert target_path("/app/", tmp_path, mount="/app/") == tmp_path / "index.html"
    assert target_path("/apple", tmp_path, mount="/app/") == tmp_path / "apple"


def test_target_does_no_io(tmp_path):
    target_path("/deep/nested/dir/", tmp_path / "nowhere")
    assert not (tmp_path / "nowhere").exists()


# --------------------------------------------------------------------------- #
#                                Round trips                                  #
# --------------------------------------------------------------------------- #


def test_200_writes_body(make_materializer, destination):
    app = SiteApp({"/page/": ("200 OK", HTML, [b"<p>hello</p>", b"<p>world</p>"])})
    response = make_materializer(app).get("/page/")

    assert response.status == 200
    assert response.file == destination / "page" / "index.html"
    assert response.file.read_bytes() == b"<p>hello</p><p>world</p>"


@pytest.mark.parametrize(
    "body,expected",
    [
        (b"raw bytes", b"raw bytes"),
        ("raw text", b"raw text"),
        ([b"raw ", "bytes"], b"raw bytes"),
        (io.BytesIO(b"file-like body"), b"file-like body"),
    ],
)
def test_body_shapes(make_materializer, body, expected):
    app = SiteApp({"/x": ("200 OK", TEXT, lambda environ: body)})
    response = make_materializer(app).get("/x")

    assert response.file.read_bytes() == expected
    if isinstance(body, io.BytesIO):
        assert body.closed


def test_generator_body_and_file_wrapper(make_materializer):
    def gen(environ):
        yield b"one,"
        yield b""
        yield b"two"

    def wrapped(environ):
        return environ["wsgi.file_wrapper"](io.BytesIO(b"x" * 20000), 4096)

    app = SiteApp({"/gen": ("200 OK", TEXT, gen), "/big": ("200 OK", TEXT, wrapped)})
    mat = make_materializer(app)

    assert mat.get("/gen").file.read_bytes() == b"one,two"
    assert mat.get("/big").file.read_bytes() == b"x" * 20000


def test_deferred_start_response(make_materializer):
    def app(environ, start_response):
        start_response("200 OK", TEXT)
        yield b"late "
        yield b"start"

    response = make_materializer(app).get("/late")
    assert response.status == 200
    assert response.file.read_bytes() == b"late start"


def test_write_callable(make_materializer):
    def app(environ, start_response):
        write = start_response("200 OK", TEXT)
        write(b"written ")
        return [b"returned"]

    assert make_materializer(app).get("/w").file.read_bytes() == b"written returned"


class ClosingBody:
    def __init__(self, chunks, fail=False):
        self.chunks = chunks
        self.fail = fail
        self.closed = False

    def __iter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.fail:
            raise RuntimeError("boom")

    def close(self):
        self.closed = True


def test_body_closed_after_success(make_materializer):
    body = ClosingBody([b"ok"])
    make_materializer(SiteApp({"/c": ("200 OK", TEXT, lambda e: body)})).get("/c")
    assert body.closed


def test_body_closed_when_not_written(make_materializer):
    body = ClosingBody([b"gone"])
    response = make_materializer(SiteApp({"/c": ("404 Not Found", TEXT, lambda e: body)})).get("/c")
    assert response.status == 404
    assert response.file is None
    assert body.closed


def test_body_failure_is_500(make_materializer, destination):
    body = ClosingBody([b"partial"], fail=True)
    response = make_materializer(SiteApp({"/c": ("200 OK", TEXT, lambda e: body)})).get("/c")

    assert response.status == 500
    assert response.file is None
    assert body.closed
    assert not (destination / "c").exists()


# --------------------------------------------------------------------------- #
#                                 Failures                                    #
# --------------------------------------------------------------------------- #


def test_application_exception_is_500(make_materializer, destination):
    def broken(environ, start_response):
        raise ValueError("kaput")

    response = make_materializer(broken).get("/")
    assert response.status == 500
    assert response.file is None
    assert list(destination.iterdir()) == []


def test_missing_start_response_is_500(make_materializer):
    response = make_materializer(lambda environ, start_response: [b"x"]).get("/")
    assert response.status == 500


def test_error_status_replaces_unsent_headers(make_materializer):
    def app(environ, start_response):
        start_response("200 OK", HTML)
        try:
            raise LookupError("no such page")
        except LookupError:
            start_response("503 Service Unavailable", TEXT, sys.exc_info())
        return [b"down"]

    response = make_materializer(app).get("/")
    assert response.status == 503
    assert response.header("Content-Type") == "text/plain"
    assert response.file is None


def test_error_after_headers_sent_is_500(make_materializer, destination):
    def app(environ, start_response):
        start_response("200 OK", TEXT)
        yield b"half"
        try:
            raise LookupError("gone mid-stream")
        except LookupError:
            start_response("500 Internal Server Error", TEXT, sys.exc_info())
        yield b"never"

    response = make_materializer(app).get("/half")
    assert response.status == 500
    assert not (destination / "half").exists()


def test_second_start_response_without_exc_info_is_500(make_materializer):
    def app(environ, start_response):
        start_response("200 OK", TEXT)
        start_response("404 Not Found", TEXT)
        return [b"x"]

    assert make_materializer(app).get("/").status == 500


class EarlyFailure:
    def __init__(self):
        self.closed = False

    def __iter__(self):
        raise RuntimeError("before start_response")
        yield b""  # pragma: no cover

    def close(self):
        self.closed = True


def test_body_closed_when_failing_before_start_response(make_materializer):
    body = EarlyFailure()
    response = make_materializer(lambda environ, start_response: body).get("/")
    assert response.status == 500
    assert body.closed




def test_404_writes_nothing(make_materializer, destination):
    response = make_materializer(SiteApp({})).get("/nope")
    assert response.status == 404
    assert response.file is None
    assert not (destination / "nope").exists()


def test_conflict_file_then_directory(make_materializer, destination):
    app = SiteApp({"/bar/foo": ("200 OK", TEXT, [b"foo"]), "/bar": ("200 OK", TEXT, [b"bar"])})
    mat = make_materializer(app)

    first = mat.get("/bar/foo")
    second = mat.get("/bar")

    assert first.status == 200
    assert first.file == destination / "bar" / "foo"
    assert second.status == CONFLICT
    assert second.file is None
    assert (destination / "bar").is_dir()


def test_conflict_directory_then_file(make_materializer, destination):
    app = SiteApp({"/bar/foo": ("200 OK", TEXT, [b"foo"]), "/bar": ("200 OK", TEXT, [b"bar"])})
    mat = make_materializer(app)

    first = mat.get("/bar")
    second = mat.get("/bar/foo")

    assert first.status == 200
    assert (destination / "bar").read_bytes() == b"bar"
    assert second.status == CONFLICT
    assert second.file is None


# --------------------------------------------------------------------------- #
#                              Conditional GET                                #
# --------------------------------------------------------------------------- #


def test_conditional_get(make_materializer):
    stamp = formatdate(1_600_000_000, usegmt=True)
    contents = iter([b"first version", b"second version"])

    def app(environ, start_response):
        if environ.get("HTTP_IF_MODIFIED_SINCE") == stamp:
            start_response("304 Not Modified", [])
            return [b"ignored"]
        start_response("200 OK", [*HTML, ("Last-Modified", stamp)])
        return [next(contents)]

    mat = make_materializer(app)
    first = mat.get("/page.html")
    second = mat.get("/page.html")

    assert first.status == 200
    assert second.status == 304
    assert second.file == first.file
    assert first.file.read_bytes() == b"first version"
    assert int(os.stat(first.file).st_mtime) == 1_600_000_000


def test_first_visit_has_no_conditional_header(make_materializer):
    app = SiteApp({"/": ("200 OK", HTML, [b"x"])})
    make_materializer(app).get("/")
    assert "HTTP_IF_MODIFIED_SINCE" not in app.environs[0]


# --------------------------------------------------------------------------- #
#                                  Environ                                    #
# --------------------------------------------------------------------------- #


def test_environ_for_mounted_app(make_materializer, destination):
    app = SiteApp({"/app/page": ("200 OK", TEXT, [b"p"])})
    mat = make_materializer(app, url="https://Example.com:8443/app/", environ={"SITEFREEZE_ENV": "test"})
    response = mat.get(CrawlTarget("/app/page?x=1"))

    env = app.environs[0]
    assert env["REQUEST_METHOD"] == "GET"
    assert env["SCRIPT_NAME"] == "/app"
    assert env["PATH_INFO"] == "/page"
    assert env["QUERY_STRING"] == "x=1"
    assert env["HTTP_HOST"] == "Example.com:8443"
    assert env["SERVER_PORT"] == "8443"
    assert env["wsgi.url_scheme"] == "https"
    assert env["SITEFREEZE_ENV"] == "test"
    assert response.file == destination / "page"


def test_absolute_resolves_against_base(make_materializer):
    mat = make_materializer(SiteApp({}), url="http://example.com/")
    assert mat.absolute("/a/b").raw == "http://example.com/a/b"
    assert mat.absolute(CrawlTarget("/x", literal=True)).literal
    assert mat.target("http://other.org/q/") == Path(mat.destination) / "q" / "index.html"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("page", "http://localhost/page"),
        ("/a/../b", "http://localhost/b"),
        ("/./x/./y", "http://localhost/x/y"),
        ("/a b", "http://localhost/a%20b"),
        ("/a%20b", "http://localhost/a%20b"),
        ("/caf%C3%A9", "http://localhost/caf%C3%A9"),
        ("/q?x=1#frag", "http://localhost/q?x=1"),
    ],
)
def test_absolute_normalizes_path(make_materializer, raw, expected):
    assert make_materializer(SiteApp({})).absolute(raw).raw == expected


def test_canonical_path_keeps_encoded_slash():
    assert canonical_path("/a%2Fb/c d") == "/a%2Fb/c%20d"
    assert canonical_path("") == "/"
