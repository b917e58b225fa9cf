"""Custom exceptions for the image variants pipeline."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional


class ImageVariantsError(Exception):
    """Base exception for all image variants errors."""


class S3Error(ImageVariantsError):
    """Error raised for S3 related failures."""

    def __init__(self, message: str, bucket: str = "", key: str = ""):
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class FetchError(S3Error):
    """The source object could not be read (non-OK status or transport error)."""


class UploadError(S3Error):
    """The archive could not be written back to the store."""


class ImageProcessingError(ImageVariantsError):
    """Error raised when processing a single image fails."""


class DecodeError(ImageProcessingError):
    """The source bytes could not be decoded as a raster image."""

    def __init__(self, message: str, size_name: str = ""):
        super().__init__(message)
        self.size_name = size_name


class ConfigurationError(ImageVariantsError):
    """Error raised for invalid configuration options."""


class EventParseError(ImageVariantsError):
    """A notification item could not be parsed into storage locators."""


class RecordTimeoutError(ImageVariantsError):
    """A record did not finish before the invocation deadline."""


class BatchProcessingError(ImageVariantsError):
    """Raised by the entrypoint when records failed and redelivery is wanted."""

    def __init__(self, message: str, failures: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.failures = failures or []


@contextmanager
def batch_error_handler() -> Any:
    """Context manager that re-raises foreign exceptions as ImageProcessingError."""
    try:
        yield
    except ImageVariantsError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise ImageProcessingError(str(exc)) from exc
