import pytest

from image_variants.core.exceptions import (
    BatchProcessingError,
    DecodeError,
    FetchError,
    ImageProcessingError,
    ImageVariantsError,
    S3Error,
    UploadError,
    batch_error_handler,
)


def test_exception_hierarchy() -> None:
    assert issubclass(FetchError, S3Error)
    assert issubclass(UploadError, S3Error)
    assert issubclass(DecodeError, ImageProcessingError)
    assert issubclass(S3Error, ImageVariantsError)
    assert issubclass(BatchProcessingError, ImageVariantsError)


def test_s3_error_carries_locator() -> None:
    err = FetchError("gone", bucket="uploads", key="a.png")
    assert (err.bucket, err.key) == ("uploads", "a.png")


def test_batch_error_handler_wraps_foreign_errors() -> None:
    with pytest.raises(ImageProcessingError, match="boom"):
        with batch_error_handler():
            raise ValueError("boom")


def test_batch_error_handler_passes_pipeline_errors() -> None:
    with pytest.raises(UploadError):
        with batch_error_handler():
            raise UploadError("denied")
