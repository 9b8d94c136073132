# sitefreeze/crawler/body.py
"""
Normalization of WSGI response bodies.

Applications hand back bytes, strings, lists of chunks, generators,
``wsgi.file_wrapper`` objects or plain file-like objects. :class:`Body`
turns all of them into a stream of byte chunks and releases the underlying
resource when the ``with`` block exits, whatever happens inside it.
"""
from __future__ import annotations

from typing import Any, Iterator, List, Optional

__all__ = ("CHUNK_SIZE", "Body", "FileWrapper")

CHUNK_SIZE = 8192


def _as_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    raise TypeError(f"Body chunks must be bytes, got {type(chunk).__name__}")


class Body:
    """Any supported body shape, read sequentially as bytes.

    *prefix* holds data pushed through the legacy ``write()`` callable of
    ``start_response``; it is emitted before the body proper.
    """

    def __init__(self, content: Any, prefix: Optional[List[bytes]] = None, chunk_size: int = CHUNK_SIZE) -> None:
        self.content = content
        self.prefix = list(prefix or [])
        self.chunk_size = chunk_size
        self.closed = False

    def __enter__(self) -> Body:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self.prefix:
            yield _as_bytes(chunk)
        content = self.content
        if content is None:
            return
        if isinstance(content, (bytes, bytearray, memoryview, str)):
            yield _as_bytes(content)
        elif hasattr(content, "read"):
            while True:
                chunk = content.read(self.chunk_size)
                if not chunk:
                    break
                yield _as_bytes(chunk)
        elif hasattr(content, "__iter__"):
            for chunk in content:
                if chunk:
                    yield _as_bytes(chunk)
        else:
            raise TypeError(f"Don't know how to handle body: {content!r}")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        close = getattr(self.content, "close", None)
        if callable(close):
            close()


class FileWrapper:
    """Minimal ``wsgi.file_wrapper``: iterate a file-like object in blocks."""

    def __init__(self, filelike: Any, blksize: int = CHUNK_SIZE) -> None:
        self.filelike = filelike
        self.blksize = blksize

    def __iter__(self) -> Iterator[bytes]:
        while True:
            data = self.filelike.read(self.blksize)
            if not data:
                return
            yield data

    def close(self) -> None:
        close = getattr(self.filelike, "close", None)
        if callable(close):
            close()
