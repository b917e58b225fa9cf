"""Core utilities and shared components for the image variants pipeline."""

from .archive import archive_entry_name, build_archive
from .config import PipelineConfig, load_config
from .events import extract_records
from .image_utils import (
    calculate_archive_key,
    derive_base_name,
    resize_image,
    should_resize,
)
from .logging_config import get_logger, setup_logger
from .exceptions import (
    ImageVariantsError,
    ImageProcessingError,
    DecodeError,
    S3Error,
    FetchError,
    UploadError,
    ConfigurationError,
    EventParseError,
    RecordTimeoutError,
    BatchProcessingError,
)
from .models import (
    BatchReport,
    DecodeFailurePolicy,
    ParsedRecord,
    RecordResult,
    RecordStage,
    RecordStatus,
    ResizeGuard,
    SizeCatalog,
    SizeSpec,
    StorageLocator,
    UploadOutcome,
)

__all__ = [
    "PipelineConfig",
    "load_config",
    "extract_records",
    "archive_entry_name",
    "build_archive",
    "calculate_archive_key",
    "derive_base_name",
    "resize_image",
    "should_resize",
    "setup_logger",
    "get_logger",
    "ImageVariantsError",
    "ImageProcessingError",
    "DecodeError",
    "S3Error",
    "FetchError",
    "UploadError",
    "ConfigurationError",
    "EventParseError",
    "RecordTimeoutError",
    "BatchProcessingError",
    "BatchReport",
    "DecodeFailurePolicy",
    "ParsedRecord",
    "RecordResult",
    "RecordStage",
    "RecordStatus",
    "ResizeGuard",
    "SizeCatalog",
    "SizeSpec",
    "StorageLocator",
    "UploadOutcome",
]
