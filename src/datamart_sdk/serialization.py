"""Fixed object format used by ``save_object``/``load_object``.

Objects are pickled and gzip-compressed, stored under the ``.pkl``
extension and uploaded as ``application/x-gzip``. Loading sniffs the gzip
magic bytes, so plain (uncompressed) pickles written by other tools load too.

Only load objects from a Data Mart you trust: unpickling runs arbitrary code.
"""

from __future__ import annotations

import gzip
import io
import os
import pickle
from typing import IO, Any

OBJECT_EXTENSION = ".pkl"
OBJECT_CONTENT_TYPE = "application/x-gzip"

_GZIP_MAGIC = b"\x1f\x8b"


def file_extension(filename: str) -> str:
    """Lower-cased extension of ``filename`` including the dot, or ``""``.

    A name consisting only of the object extension (``".pkl"``) counts as
    carrying it, although ``os.path.splitext`` treats it as a hidden file.
    """
    if os.path.basename(filename).lower() == OBJECT_EXTENSION:
        return OBJECT_EXTENSION
    return os.path.splitext(filename)[1].lower()


def dump(obj: Any, fileobj: IO[bytes]) -> None:
    with gzip.GzipFile(fileobj=fileobj, mode="wb") as compressed:
        pickle.dump(obj, compressed, protocol=pickle.HIGHEST_PROTOCOL)


def _peekable(fileobj: IO[bytes]) -> IO[bytes]:
    if hasattr(fileobj, "peek"):
        return fileobj
    return io.BufferedReader(fileobj)  # type: ignore[arg-type]


def is_gzipped(fileobj: IO[bytes]) -> bool:
    return fileobj.peek(2)[:2] == _GZIP_MAGIC  # type: ignore[attr-defined]


def load(fileobj: IO[bytes]) -> Any:
    stream = _peekable(fileobj)
    if is_gzipped(stream):
        with gzip.GzipFile(fileobj=stream, mode="rb") as decompressed:
            return pickle.load(decompressed)
    return pickle.load(stream)


def dump_path(obj: Any, path: str) -> None:
    with open(path, "wb") as f:
        dump(obj, f)


def load_path(path: str) -> Any:
    with open(path, "rb") as f:
        return load(f)
