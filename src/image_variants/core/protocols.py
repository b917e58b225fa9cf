"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .models import (
    FetchedObject,
    ParsedRecord,
    RecordResult,
    SizeSpec,
    StorageLocator,
    UploadOutcome,
)


class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the pipeline uses."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs: Any) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class ObjectFetcher(ABC):
    """Reads the full content of a stored object."""

    @abstractmethod
    def fetch(self, locator: StorageLocator) -> FetchedObject:
        """Fetch an object; raises FetchError on any failure."""
        ...


class ImageResizer(ABC):
    """Produces one re-encoded variant of an image."""

    @abstractmethod
    def resize(self, image_bytes: bytes, size: SizeSpec) -> bytes:
        """Resize image bytes to a size; raises DecodeError on unreadable input."""
        ...


class ArchiveBuilder(ABC):
    """Packages named variants into a single archive."""

    @abstractmethod
    def build(self, base_name: str, variants: Mapping[str, bytes]) -> bytes:
        """Build the archive bytes."""
        ...


class ObjectUploader(ABC):
    """Writes an object to the store."""

    @abstractmethod
    def upload(
        self,
        locator: StorageLocator,
        body: bytes,
        tags: Optional[Mapping[str, str]] = None,
    ) -> UploadOutcome:
        """Write once; failures are returned, never raised."""
        ...


class BatchProcessor(ABC):
    """Runs the record pipeline over a batch of parsed records."""

    @abstractmethod
    def process_batch(self, records: List[ParsedRecord]) -> List[RecordResult]:
        """Process records, returning one result per record in input order."""
        ...
