"""Lambda entrypoint: SNS/SQS/S3 notification batch in, zipped variants out."""

import os
from typing import Any, Dict, Mapping, Optional

from .core import BatchProcessingError, PipelineConfig, get_logger, load_config
from .core.logging_config import set_request_id
from .core.factories import ProcessingPipelineFactory, S3ClientFactory
from .core.models import BatchReport
from .core.protocols import LoggerProtocol, S3ClientProtocol

# Seconds kept free before the Lambda deadline so the report can still be returned
DEADLINE_MARGIN_SECONDS = 2.0

_s3_client: Optional[S3ClientProtocol] = None


def _shared_s3_client(config: PipelineConfig) -> S3ClientProtocol:
    """One boto3 client per container, reused across warm invocations."""
    global _s3_client
    if _s3_client is None:
        _s3_client = S3ClientFactory.create_s3_client(
            max_pool_connections=max(10, config.concurrency)
        )
    return _s3_client


def apply_deadline(config: PipelineConfig, context: Any) -> PipelineConfig:
    """Bound the asyncio timeout by the time Lambda has left for this invocation."""
    if config.processor != "asyncio" or context is None:
        return config
    remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
    if remaining_ms is None:
        return config

    available = remaining_ms() / 1000.0 - DEADLINE_MARGIN_SECONDS
    if available <= 0:
        return config
    if config.timeout_seconds is None or config.timeout_seconds > available:
        return config.model_copy(update={"timeout_seconds": available})
    return config


def run_notification(
    event: Mapping[str, Any],
    config: PipelineConfig,
    s3_client: Optional[S3ClientProtocol] = None,
    logger: Optional[LoggerProtocol] = None,
    async_client_factory: Any = None,
) -> BatchReport:
    """
    Process one notification batch and return its report.

    Raises:
        BatchProcessingError: If records failed and ``fail_on_record_error`` is set
    """
    pipeline = ProcessingPipelineFactory.create_pipeline(
        config=config,
        s3_client=s3_client,
        logger=logger,
        async_client_factory=async_client_factory,
    )
    report = pipeline.handle(event)

    if report.failed and config.fail_on_record_error:
        raise BatchProcessingError(
            f"{report.failed} of {report.total} record(s) failed",
            failures=report.failure_summary,
        )
    return report


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda handler for SNS (or SQS / direct S3) notification batches."""
    set_request_id(getattr(context, "aws_request_id", None))
    logger = get_logger("handler")
    config = apply_deadline(load_config(os.environ), context)

    if config.debug:
        logger.setLevel("DEBUG")

    report = run_notification(event, config, s3_client=_shared_s3_client(config))

    logger.info(
        f"Batch complete: {report.succeeded} succeeded, {report.failed} failed, "
        f"{report.skipped} skipped"
    )
    return report.to_dict()
