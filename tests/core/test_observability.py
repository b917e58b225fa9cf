"""Tests for log contexts, the structured logger and stage timings."""

import logging

import pytest

from image_variants.core.observability import (
    LogContext,
    MetricsCollector,
    StructuredLogger,
    timed_stage,
)


class TestLogContext:
    def test_with_metadata_returns_new_context(self):
        base = LogContext(correlation_id="c-1", operation="process_record")

        child = base.with_metadata(bucket="uploads", key="a.jpg")

        assert base.metadata == {}
        assert child.metadata == {"bucket": "uploads", "key": "a.jpg"}
        assert child.correlation_id == "c-1"

    def test_with_operation_keeps_metadata(self):
        context = LogContext(correlation_id="c-1").with_metadata(key="a.jpg").with_operation("resize")

        assert context.operation == "resize"
        assert context.metadata == {"key": "a.jpg"}

    def test_render(self):
        context = LogContext(correlation_id="c-1", operation="fetch").with_metadata(key="a.jpg")

        assert context.render("Downloading", {"attempt": 1}) == "[fetch] [c-1] Downloading (key=a.jpg, attempt=1)"

    def test_render_without_operation_or_fields(self):
        assert LogContext(correlation_id="c-2").render("hello") == "[c-2] hello"


class TestStructuredLogger:
    def test_context_is_rendered_into_message(self):
        logger = StructuredLogger("test-context-rendering", level="DEBUG")
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Capture()
        logging.getLogger("test-context-rendering").addHandler(handler)
        try:
            logger.warning("Skipping variant", LogContext(correlation_id="c-3").with_metadata(size="small"))
            logger.debug("plain", bytes=10)
        finally:
            logging.getLogger("test-context-rendering").removeHandler(handler)

        assert records[0].levelno == logging.WARNING
        assert records[0].getMessage() == "[c-3] Skipping variant (size=small)"
        assert records[1].getMessage() == "plain (bytes=10)"


class TestTimedStage:
    def test_success_is_recorded(self):
        metrics = MetricsCollector()

        with timed_stage("fetch", metrics, key="a.jpg"):
            pass

        [timing] = metrics.get_metrics("fetch")
        assert timing.success is True
        assert timing.metadata == {"key": "a.jpg"}
        assert timing.duration >= 0

    def test_failure_is_recorded_and_reraised(self):
        metrics = MetricsCollector()

        with pytest.raises(ValueError):
            with timed_stage("resize", metrics):
                raise ValueError("bad pixels")

        summary = metrics.get_summary("resize")
        assert summary["failed_operations"] == 1
        assert metrics.get_metrics()[0].error_message == "bad pixels"

    def test_no_collector(self):
        with timed_stage("upload", None):
            pass

    def test_empty_summary(self):
        assert MetricsCollector().get_summary() == {}
