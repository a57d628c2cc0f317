from .client import DataMartClient
from .config import DataMartConfig
from .errors import (
    DataMartConnectionError,
    DataMartError,
    DataMartInvalidExtensionError,
    DataMartInvalidModeError,
    DataMartNotFoundError,
    DataMartReadError,
    DataMartUploadError,
    DataMartWarning,
)
from .streams import ReadableStream, WriteHandle

__all__ = [
    "DataMartClient",
    "DataMartConfig",
    "DataMartConnectionError",
    "DataMartError",
    "DataMartInvalidExtensionError",
    "DataMartInvalidModeError",
    "DataMartNotFoundError",
    "DataMartReadError",
    "DataMartUploadError",
    "DataMartWarning",
    "ReadableStream",
    "WriteHandle",
]
