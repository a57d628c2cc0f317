from __future__ import annotations

import io
import logging
import mimetypes
import os
import pickle
import tempfile
import warnings
from typing import IO, Any, Dict, Optional, Union

import httpx

from . import serialization
from .config import DataMartConfig
from .errors import (
    DataMartConnectionError,
    DataMartInvalidExtensionError,
    DataMartInvalidModeError,
    DataMartNotFoundError,
    DataMartReadError,
    DataMartUploadError,
    DataMartWarning,
)
from .streams import ReadableStream, WriteHandle, remove_temp_file

logger = logging.getLogger(__name__)

DATAMART_PATH = "/DataMart"

READ_MODES = ("r", "rb")
WRITE_MODES = ("w", "wb")


def _guess_content_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


def _normalize_mode(mode: str) -> str:
    value = (mode or "").lower()
    if value not in READ_MODES + WRITE_MODES:
        raise DataMartInvalidModeError(
            "Invalid mode - please use either 'r', 'rb', 'w' or 'wb'."
        )
    return value


def _object_filename_for_save(filename: str) -> str:
    extension = serialization.file_extension(filename)
    if extension == "":
        return filename + serialization.OBJECT_EXTENSION
    if extension != serialization.OBJECT_EXTENSION:
        raise DataMartInvalidExtensionError(
            f"File must be of type *{serialization.OBJECT_EXTENSION}"
        )
    return filename


def _check_object_filename_for_load(filename: str) -> None:
    if serialization.file_extension(filename) != serialization.OBJECT_EXTENSION:
        raise DataMartInvalidExtensionError(
            f"Can only load data from *{serialization.OBJECT_EXTENSION} objects."
        )


class DataMartClient:
    """Synchronous Data Mart client.

    Files are addressed by name in a flat namespace. ``exists`` never raises;
    every other operation raises a :class:`~datamart_sdk.errors.DataMartError`
    subclass on failure and never leaves temporary files behind.
    """

    def __init__(
        self,
        config: Optional[DataMartConfig] = None,
        *,
        company_secret: Optional[str] = None,
        client_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        temp_dir: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        overrides: Dict[str, Any] = {
            "company_secret": company_secret,
            "client_id": client_id,
            "base_url": base_url,
            "timeout_seconds": timeout_seconds,
            "temp_dir": temp_dir,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if config is None:
            config = DataMartConfig(**overrides)
        elif overrides:
            config = DataMartConfig(**{**config.model_dump(), **overrides})
        self.config = config
        self._client = httpx.Client(
            base_url=self.config.base_url,
            timeout=float(self.config.timeout_seconds),
            headers=headers or {},
        )

    @classmethod
    def from_env(cls) -> "DataMartClient":
        return cls(DataMartConfig.from_env())

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "DataMartClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _params(self, filename: str) -> Dict[str, str]:
        return {"filename": filename}

    def _require_credentials(self) -> None:
        if not self.config.has_credentials:
            raise DataMartConnectionError("Could not connect to Data Mart.")

    def _temp_path(self, suffix: str = "") -> str:
        fd, path = tempfile.mkstemp(prefix="datamart_", suffix=suffix, dir=self.config.temp_dir)
        os.close(fd)
        return path

    def exists(self, filename: str) -> bool:
        """Return True if ``filename`` is in the Data Mart.

        Never raises: a missing file, a refused request or a transport error
        all log a warning, emit :class:`DataMartWarning` and return False.
        """
        status_code: Optional[int] = None
        if self.config.has_credentials:
            try:
                response = self._client.head(
                    DATAMART_PATH,
                    params=self._params(filename),
                    headers=self.config.headers(),
                )
                status_code = response.status_code
            except httpx.HTTPError as exc:
                logger.debug("HEAD %s failed: %s", filename, exc)

        if status_code != 200:
            logger.warning("File not found: %s (status %s)", filename, status_code)
            warnings.warn("File not found.", DataMartWarning, stacklevel=2)
            return False
        logger.info("File was found: %s", filename)
        return True

    def open(
        self,
        filename: str,
        mode: str = "r",
        *,
        encoding: Optional[str] = None,
    ) -> Union[IO[Any], WriteHandle]:
        """Open a Data Mart file for reading (``r``/``rb``) or writing (``w``/``wb``).

        Write handles only reach the Data Mart once ``commit()`` is called.
        """
        value = _normalize_mode(mode)
        if value in READ_MODES:
            return self.open_read(filename, value, encoding=encoding)
        return self.open_write(filename, value, encoding=encoding)

    def _stream_response(self, filename: str) -> httpx.Response:
        request = self._client.build_request(
            "GET",
            DATAMART_PATH,
            params=self._params(filename),
            headers=self.config.headers(),
        )
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise DataMartNotFoundError("File not found.") from exc
        if response.status_code != 200:
            response.close()
            logger.debug("GET %s returned %s", filename, response.status_code)
            raise DataMartNotFoundError("File not found.")
        return response

    def open_read(
        self,
        filename: str,
        mode: str = "rb",
        *,
        encoding: Optional[str] = None,
    ) -> IO[Any]:
        value = _normalize_mode(mode)
        if value not in READ_MODES:
            raise DataMartInvalidModeError("open_read only accepts 'r' or 'rb'.")
        self._require_credentials()
        response = self._stream_response(filename)
        buffered = io.BufferedReader(ReadableStream(response, filename))
        if value == "rb":
            return buffered
        return io.TextIOWrapper(buffered, encoding=encoding or "utf-8")

    def open_write(
        self,
        filename: str,
        mode: str = "wb",
        *,
        encoding: Optional[str] = None,
    ) -> WriteHandle:
        value = _normalize_mode(mode)
        if value not in WRITE_MODES:
            raise DataMartInvalidModeError("open_write only accepts 'w' or 'wb'.")
        self._require_credentials()
        suffix = os.path.splitext(filename)[1]
        fd, temp_path = tempfile.mkstemp(prefix="datamart_", suffix=suffix, dir=self.config.temp_dir)
        try:
            if value == "wb":
                fileobj = os.fdopen(fd, "wb")
            else:
                fileobj = os.fdopen(fd, "w", encoding=encoding or "utf-8")
        except Exception:
            os.close(fd)
            remove_temp_file(temp_path)
            raise
        return WriteHandle(filename, temp_path, fileobj, self._upload_handle)

    def _upload_handle(self, filename: str, path: str) -> None:
        self._upload_file(filename, path, _guess_content_type(filename))
        logger.info("File was written successfully: %s", filename)

    def _upload_file(self, filename: str, path: str, content_type: str) -> None:
        headers = self.config.headers()
        headers["Content-Type"] = content_type
        headers["Content-Length"] = str(os.path.getsize(path))
        try:
            with open(path, "rb") as body:
                response = self._client.post(
                    DATAMART_PATH,
                    params=self._params(filename),
                    headers=headers,
                    content=body,
                )
        except httpx.HTTPError as exc:
            raise DataMartUploadError(filename) from exc
        if response.status_code != 200:
            raise DataMartUploadError(filename, response.status_code)

    def save_object(self, obj: Any, filename: str) -> str:
        """Serialize ``obj`` and upload it as ``filename``.

        A bare name gets the ``.pkl`` extension; any other extension is
        rejected before anything is written. Returns the remote filename,
        which is what ``load_object`` needs to read the object back. The
        reload hint is logged at INFO on ``datamart_sdk.client``; call
        ``logging.basicConfig(level=logging.INFO)`` to see it interactively.
        """
        filename = _object_filename_for_save(filename)
        self._require_credentials()
        temp_path = self._temp_path(serialization.OBJECT_EXTENSION)
        try:
            serialization.dump_path(obj, temp_path)
            self._upload_file(filename, temp_path, serialization.OBJECT_CONTENT_TYPE)
        finally:
            remove_temp_file(temp_path)
        logger.info(
            "Object uploaded to Data Mart. To re-import object use:\n"
            "   >>> client = DataMartClient.from_env()\n"
            "   >>> client.load_object(%r)",
            filename,
        )
        return filename

    def _download_to(self, filename: str, path: str) -> None:
        try:
            with self._client.stream(
                "GET",
                DATAMART_PATH,
                params=self._params(filename),
                headers=self.config.headers(),
            ) as response:
                if response.status_code != 200:
                    raise DataMartNotFoundError("File not found.")
                with open(path, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as exc:
            raise DataMartNotFoundError("File not found.") from exc

    def load_object(self, filename: str) -> Any:
        """Download ``filename`` (must end in ``.pkl``) and deserialize it."""
        _check_object_filename_for_load(filename)
        self._require_credentials()
        temp_path = self._temp_path()
        # the download recreates the file; its absence afterwards is a read failure
        remove_temp_file(temp_path)
        try:
            self._download_to(filename, temp_path)
            if not os.path.exists(temp_path):
                raise DataMartReadError("Could not read from file.")
            try:
                return serialization.load_path(temp_path)
            except (EOFError, OSError, ValueError, pickle.UnpicklingError) as exc:
                raise DataMartReadError("Could not read from file.") from exc
        finally:
            remove_temp_file(temp_path)

