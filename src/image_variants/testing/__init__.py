"""Testing utilities and fakes for the image variants pipeline."""

from .fakes import (
    FakeAsyncS3Client,
    FakeS3Client,
    FakeLogger,
    S3Object,
    S3Bucket,
    create_test_image,
    make_s3_record,
    make_sns_event,
    setup_test_s3_environment,
)

__all__ = [
    "FakeAsyncS3Client",
    "FakeS3Client",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "make_s3_record",
    "make_sns_event",
    "setup_test_s3_environment",
]
