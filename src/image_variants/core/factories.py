"""Factory classes for creating configured service instances."""

from typing import TYPE_CHECKING, Any, Optional

import boto3
from botocore.config import Config

from ..processors import (
    AsyncioBatchProcessor,
    SerialBatchProcessor,
    ThreadPoolBatchProcessor,
)
from .config import PipelineConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import BatchProcessor, LoggerProtocol, S3ClientProtocol
from .services import (
    ImageResizerService,
    NotificationOrchestrator,
    RecordProcessor,
    S3ObjectFetcher,
    S3ObjectUploader,
    ZipArchiveBuilder,
)

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client
else:
    S3Client = Any


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, debug: bool = False) -> LoggerProtocol:
        """Create a structured logger; ``debug`` forces DEBUG level."""
        return StructuredLogger(name, level="DEBUG" if debug else None)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(max_pool_connections: int = 10, **kwargs: Any) -> S3Client:
        """Create S3 client; the pool must fit the number of worker threads."""
        session = boto3.Session()
        config = Config(max_pool_connections=max_pool_connections, retries={"total_max_attempts": 1})
        return session.client("s3", config=config, **kwargs)  # type: ignore


class ProcessingPipelineFactory:
    """Factory for creating the complete notification pipeline."""

    @staticmethod
    def create_record_processor(
        config: PipelineConfig,
        s3_client: S3ClientProtocol,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> RecordProcessor:
        return RecordProcessor(
            fetcher=S3ObjectFetcher(s3_client, logger),
            resizer=ImageResizerService(config.resize_guard),
            archiver=ZipArchiveBuilder(config.preserve_leading_slash),
            uploader=S3ObjectUploader(s3_client, logger),
            config=config,
            logger=logger,
            metrics_collector=metrics_collector,
        )

    @staticmethod
    def create_batch_processor(
        config: PipelineConfig,
        record_processor: RecordProcessor,
        async_client_factory: Any = None,
    ) -> BatchProcessor:
        if config.processor == "multithread":
            return ThreadPoolBatchProcessor(record_processor, config.concurrency)
        if config.processor == "asyncio":
            return AsyncioBatchProcessor(
                record_processor,
                concurrency=config.concurrency,
                timeout_seconds=config.timeout_seconds,
                client_factory=async_client_factory,
            )
        return SerialBatchProcessor(record_processor)

    @staticmethod
    def create_pipeline(
        config: Optional[PipelineConfig] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        async_client_factory: Any = None,
    ) -> NotificationOrchestrator:
        """Create a fully configured pipeline."""
        config = config or PipelineConfig()

        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client(
                max_pool_connections=max(10, config.concurrency)
            )

        if logger is None:
            logger = LoggerFactory.create_logger("image-variants.pipeline", debug=config.debug)

        record_processor = ProcessingPipelineFactory.create_record_processor(
            config, s3_client, logger, metrics_collector
        )
        batch_processor = ProcessingPipelineFactory.create_batch_processor(
            config, record_processor, async_client_factory
        )

        return NotificationOrchestrator(batch_processor=batch_processor, logger=logger)
