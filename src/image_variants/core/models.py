"""Shared data models for the image variants pipeline."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResizeGuard(str, Enum):
    """When a source image is resized towards a target size."""

    # Resize only when width AND height both differ from the target. An image
    # matching the target on one axis is re-encoded at its original size.
    BOTH_DIMENSIONS_DIFFER = "both_dimensions_differ"
    ANY_DIMENSION_DIFFERS = "any_dimension_differs"


DEFAULT_RESIZE_GUARD = ResizeGuard.BOTH_DIMENSIONS_DIFFER


class DecodeFailurePolicy(str, Enum):
    """What an undecodable image does to its record."""

    SKIP_VARIANT = "skip_variant"
    FAIL_RECORD = "fail_record"


class RecordStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class RecordStage(str, Enum):
    """Pipeline stage a record reached (or failed at)."""

    PARSE = "parse"
    FETCHING = "fetching"
    RESIZING = "resizing"
    ARCHIVING = "archiving"
    DESTINATION_COMPUTED = "destination_computed"
    UPLOADING = "uploading"
    DONE = "done"


class StorageLocator(BaseModel):
    """Identifies one stored object."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class SizeSpec(BaseModel):
    """A named target resolution."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class SizeCatalog(BaseModel):
    """Ordered sequence of target sizes; order drives archive entry order."""

    model_config = ConfigDict(frozen=True)

    sizes: List[SizeSpec] = Field(default_factory=list)

    @field_validator("sizes")
    @classmethod
    def _unique_names(cls, sizes: List[SizeSpec]) -> List[SizeSpec]:
        seen = set()
        for size in sizes:
            if size.name in seen:
                raise ValueError(f"duplicate size name: {size.name}")
            seen.add(size.name)
        return sizes

    @classmethod
    def default(cls) -> "SizeCatalog":
        return cls(
            sizes=[
                SizeSpec(name="small", width=400, height=400),
                SizeSpec(name="medium", width=1000, height=1000),
                SizeSpec(name="large", width=1600, height=1600),
            ]
        )

    def __len__(self) -> int:
        return len(self.sizes)

    @property
    def names(self) -> List[str]:
        return [size.name for size in self.sizes]


class FetchedObject(BaseModel):
    """Bytes of a source object, owned by the record that fetched them."""

    locator: StorageLocator
    body: bytes


class UploadOutcome(BaseModel):
    """Result of a single upload attempt."""

    success: bool
    error: str = ""


class ParsedRecord(BaseModel):
    """One storage-change entry extracted from a notification item.

    ``locator`` is None when the item could not be parsed; ``error`` then
    carries the reason and the record is reported as failed at PARSE.
    """

    locator: Optional[StorageLocator] = None
    error: str = ""
    origin: str = ""


class RecordResult(BaseModel):
    """Result of running the pipeline for a single storage-change record."""

    bucket: str = ""
    source_key: str = ""
    dest_key: str = ""
    status: RecordStatus = RecordStatus.FAILED
    stage: RecordStage = RecordStage.FETCHING
    error: str = ""
    variant_count: int = 0
    failed_variants: List[str] = Field(default_factory=list)
    processing_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == RecordStatus.DONE


class BatchReport(BaseModel):
    """Summary of one notification batch."""

    results: List[RecordResult] = Field(default_factory=list)
    # {"item": s3 url or origin, "stage", "error"} per failed record
    failure_summary: List[Dict[str, str]] = Field(default_factory=list)
    processing_time: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status == RecordStatus.DONE)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == RecordStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == RecordStatus.SKIPPED)

    @property
    def failures(self) -> List[RecordResult]:
        return [r for r in self.results if r.status == RecordStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statusCode": 200 if self.failed == 0 else 207,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "failures": self.failure_summary,
            "processing_time": self.processing_time,
            "results": [r.model_dump(mode="json") for r in self.results],
        }
