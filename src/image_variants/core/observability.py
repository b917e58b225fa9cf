"""Structured logging context and per-stage timing for record processing."""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from dataclasses import dataclass, field, replace

from .logging_config import setup_logger


@dataclass(frozen=True)
class LogContext:
    """Correlation id, operation and metadata attached to a record's log lines."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})

    def render(self, message: str, extra: Optional[Dict[str, Any]] = None) -> str:
        """``[operation] [correlation_id] message (k=v, ...)``"""
        prefix = f"[{self.operation}] " if self.operation else ""
        fields = {**self.metadata, **(extra or {})}
        suffix = ""
        if fields:
            suffix = " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        return f"{prefix}[{self.correlation_id}] {message}{suffix}"


class StructuredLogger:
    """Logger accepting an optional LogContext, as the pipeline services expect."""

    def __init__(self, name: str, level: Optional[str] = None):
        self._logger = setup_logger(name, level=level)

    def _log(self, level: int, message: str, context: Optional[LogContext], **kwargs: Any) -> None:
        if context is not None:
            message = context.render(message, kwargs)
        elif kwargs:
            message = f"{message} (" + ", ".join(f"{k}={v}" for k, v in kwargs.items()) + ")"
        self._logger.log(level, message)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, context, **kwargs)


@dataclass
class StageTiming:
    """Duration and outcome of one pipeline stage for one record."""

    operation: str
    duration: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class MetricsCollector:
    """Collects stage timings; safe to share between worker threads."""

    def __init__(self):
        self._timings: List[StageTiming] = []
        self._lock = threading.Lock()

    def record(self, timing: StageTiming) -> None:
        with self._lock:
            self._timings.append(timing)

    def get_metrics(self, operation: Optional[str] = None) -> List[StageTiming]:
        with self._lock:
            return [t for t in self._timings if operation is None or t.operation == operation]

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Counts and duration statistics, empty when nothing was recorded."""
        timings = self.get_metrics(operation)
        if not timings:
            return {}

        durations = [t.duration for t in timings]
        successful = sum(1 for t in timings if t.success)
        return {
            "total_operations": len(timings),
            "successful_operations": successful,
            "failed_operations": len(timings) - successful,
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
        }


@contextmanager
def timed_stage(
    operation: str,
    metrics_collector: Optional[MetricsCollector],
    **metadata: Any,
) -> Iterator[None]:
    """Record the duration and outcome of a pipeline stage."""
    started = time.perf_counter()
    success = False
    error_message = None
    try:
        yield
        success = True
    except Exception as e:
        error_message = str(e) or type(e).__name__
        raise
    finally:
        if metrics_collector is not None:
            metrics_collector.record(
                StageTiming(
                    operation=operation,
                    duration=time.perf_counter() - started,
                    success=success,
                    error_message=error_message,
                    metadata=metadata,
                )
            )
