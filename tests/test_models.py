"""Tests for core data models."""

import pytest
from pydantic import ValidationError

from image_variants.core.models import (
    BatchReport,
    RecordResult,
    RecordStage,
    RecordStatus,
    SizeCatalog,
    SizeSpec,
    StorageLocator,
)


class TestStorageLocator:
    def test_str_is_s3_uri(self):
        locator = StorageLocator(bucket="uploads", key="photos/img.png")
        assert str(locator) == "s3://uploads/photos/img.png"

    def test_locator_is_immutable(self):
        locator = StorageLocator(bucket="uploads", key="img.png")
        with pytest.raises(ValidationError):
            locator.key = "other.png"

    def test_empty_key_rejected(self):
        with pytest.raises(ValidationError):
            StorageLocator(bucket="uploads", key="")


class TestSizeSpec:
    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-1, 5)])
    def test_non_positive_dimensions_rejected(self, width, height):
        with pytest.raises(ValidationError):
            SizeSpec(name="bad", width=width, height=height)


class TestSizeCatalog:
    def test_default_catalog_matches_reference_sizes(self):
        catalog = SizeCatalog.default()
        assert catalog.names == ["small", "medium", "large"]
        assert [(s.width, s.height) for s in catalog.sizes] == [
            (400, 400),
            (1000, 1000),
            (1600, 1600),
        ]

    def test_order_is_preserved(self):
        catalog = SizeCatalog(
            sizes=[
                SizeSpec(name="b", width=20, height=20),
                SizeSpec(name="a", width=10, height=10),
            ]
        )
        assert catalog.names == ["b", "a"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="duplicate size name"):
            SizeCatalog(
                sizes=[
                    SizeSpec(name="thumb", width=10, height=10),
                    SizeSpec(name="thumb", width=20, height=20),
                ]
            )

    def test_empty_catalog_is_valid(self):
        assert len(SizeCatalog()) == 0


class TestBatchReport:
    def _report(self):
        return BatchReport(
            results=[
                RecordResult(bucket="b", source_key="ok.png", status=RecordStatus.DONE, stage=RecordStage.DONE),
                RecordResult(bucket="b", source_key="bad.png", status=RecordStatus.FAILED, error="boom"),
                RecordResult(bucket="b", source_key="x.zip", status=RecordStatus.SKIPPED),
            ]
        )

    def test_counts(self):
        report = self._report()
        assert report.total == 3
        assert report.succeeded == 1
        assert report.failed == 1
        assert report.skipped == 1
        assert [r.source_key for r in report.failures] == ["bad.png"]

    def test_to_dict_partial_failure_status(self):
        data = self._report().to_dict()
        assert data["statusCode"] == 207
        assert data["results"][1]["status"] == "failed"
        assert data["results"][1]["stage"] == "fetching"
        assert data["failures"] == []

    def test_to_dict_all_ok(self):
        assert BatchReport().to_dict()["statusCode"] == 200

    def test_record_result_success_property(self):
        assert RecordResult(status=RecordStatus.DONE).success is True
        assert RecordResult().success is False

    def test_to_dict_carries_failure_summary(self):
        summary = [{"item": "s3://b/bad.png", "stage": "fetching", "error": "boom"}]
        report = BatchReport(results=self._report().results, failure_summary=summary)

        assert report.to_dict()["failures"] == summary
