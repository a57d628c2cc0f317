from __future__ import annotations

from typing import Optional


class DataMartError(Exception):
    """Base exception for all SDK failures."""


class DataMartNotFoundError(DataMartError):
    """Raised when a remote file cannot be opened or downloaded."""


class DataMartConnectionError(DataMartError):
    """Raised when a request is attempted without Data Mart credentials."""


class DataMartInvalidExtensionError(DataMartError, ValueError):
    """Raised when a save/load filename does not carry the object extension."""


class DataMartInvalidModeError(DataMartError, ValueError):
    """Raised when a connection is opened with an unsupported mode."""


class DataMartReadError(DataMartError):
    """Raised when a download succeeded but left nothing on disk to read."""


class DataMartUploadError(DataMartError):
    """Raised when the Data Mart refuses or never receives an upload."""

    def __init__(self, filename: str, status_code: Optional[int] = None):
        self.filename = filename
        self.status_code = None if status_code is None else int(status_code)
        message = "Could not write to data mart."
        if self.status_code is not None:
            message = f"{message} Http status: {self.status_code}"
        super().__init__(message)


class DataMartWarning(UserWarning):
    """Emitted by non-raising operations when a file is missing."""
