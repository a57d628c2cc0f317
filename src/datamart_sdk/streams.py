from __future__ import annotations

import io
import logging
import os
from typing import IO, Any, Callable, Iterable, Iterator, Optional

import httpx

from .errors import DataMartReadError

logger = logging.getLogger(__name__)

Uploader = Callable[[str, str], None]


def remove_temp_file(path: Optional[str]) -> None:
    if path and os.path.exists(path):
        os.remove(path)


class ReadableStream(io.RawIOBase):
    """Raw byte stream over a live Data Mart download.

    Wrap it in ``io.BufferedReader`` (``DataMartClient.open_read`` does) to get
    ``peek``/``readline`` and let generic deserializers sniff compression.
    """

    def __init__(self, response: httpx.Response, filename: str) -> None:
        super().__init__()
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_bytes()
        self._pending = b""
        self.filename = filename

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def content_type(self) -> Optional[str]:
        return self._response.headers.get("content-type")

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except httpx.HTTPError as exc:
                raise DataMartReadError(f"Could not read from file: {exc}") from exc
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if not self.closed:
            self._response.close()
            logger.debug("Closed Data Mart stream for %s", self.filename)
        super().close()


class WriteHandle:
    """Local buffer for a Data Mart file, pushed as one upload on ``commit()``.

    Writes go to a temporary file. ``commit()`` closes it, uploads the whole
    file and removes it. ``close()``/``discard()`` remove it without
    uploading, which is also what leaving a ``with`` block does.
    """

    def __init__(self, filename: str, temp_path: str, fileobj: IO[Any], uploader: Uploader) -> None:
        self.filename = filename
        self.temp_path = temp_path
        self._file = fileobj
        self._upload = uploader
        self._written = False
        self._finished = False
        self.committed = False

    @property
    def name(self) -> str:
        return self.filename

    @property
    def closed(self) -> bool:
        return self._finished

    def writable(self) -> bool:
        return not self._finished

    def write(self, data) -> int:
        self._written = True
        return self._file.write(data)

    def writelines(self, lines: Iterable[Any]) -> None:
        self._written = True
        self._file.writelines(lines)

    def flush(self) -> None:
        self._file.flush()

    def commit(self) -> None:
        if self._finished:
            raise ValueError(f"Write handle for {self.filename} is already closed")
        self._finished = True
        try:
            self._file.close()
            self._upload(self.filename, self.temp_path)
            self.committed = True
        finally:
            remove_temp_file(self.temp_path)

    def discard(self) -> None:
        if self._finished:
            return
        self._finished = True
        try:
            self._file.close()
        finally:
            remove_temp_file(self.temp_path)
        if self._written:
            logger.warning("Discarded uncommitted writes to %s", self.filename)

    def close(self) -> None:
        self.discard()

    def __enter__(self) -> "WriteHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "committed" if self.committed else ("closed" if self._finished else "open")
        return f"<WriteHandle filename={self.filename!r} {state}>"
