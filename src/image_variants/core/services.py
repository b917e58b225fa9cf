"""Service implementations for the notification -> archive pipeline."""

import time
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from .archive import ARCHIVE_CONTENT_TYPE, build_archive
from .config import PipelineConfig
from .error_handling import BatchOperationContextManager, with_error_handling
from .events import extract_records
from .exceptions import (
    DecodeError,
    EventParseError,
    FetchError,
    ImageProcessingError,
    ImageVariantsError,
    UploadError,
    batch_error_handler,
)
from .image_utils import (
    calculate_archive_key,
    decode_image,
    derive_base_name,
    encode_variant,
    resize_image,
)
from .models import (
    DEFAULT_RESIZE_GUARD,
    BatchReport,
    DecodeFailurePolicy,
    FetchedObject,
    ParsedRecord,
    RecordResult,
    RecordStage,
    RecordStatus,
    ResizeGuard,
    SizeSpec,
    StorageLocator,
    UploadOutcome,
)
from .observability import LogContext, MetricsCollector, timed_stage
from .protocols import (
    ArchiveBuilder,
    BatchProcessor,
    ImageResizer,
    LoggerProtocol,
    ObjectFetcher,
    ObjectUploader,
    S3ClientProtocol,
)

HTTP_OK = 200


def response_status(response: Mapping[str, Any]) -> Optional[int]:
    """HTTP status code of a boto3 response, if present."""
    return response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def encode_tags(tags: Optional[Mapping[str, str]]) -> str:
    """Encode a tag set the way S3's Tagging argument expects (url query string)."""
    return urlencode(dict(tags or {}))


class S3ObjectFetcher(ObjectFetcher):
    """Fetches whole objects from S3, without retries."""

    def __init__(self, s3_client: S3ClientProtocol, logger: LoggerProtocol):
        self._s3_client = s3_client
        self._logger = logger

    @with_error_handling(FetchError)
    def _get_object(self, locator: StorageLocator) -> Dict[str, Any]:
        return self._s3_client.get_object(Bucket=locator.bucket, Key=locator.key)

    def fetch(self, locator: StorageLocator) -> FetchedObject:
        """Fetch the object's bytes; any non-200 response is a FetchError."""
        self._logger.debug(f"Downloading {locator}")
        response = self._get_object(locator)

        status = response_status(response)
        if status != HTTP_OK:
            raise FetchError(
                f"S3 Retrieve Object Failed: key-{locator.key} (status {status})",
                bucket=locator.bucket,
                key=locator.key,
            )

        try:
            body = response["Body"].read()
        except Exception as e:  # noqa: BLE001
            raise FetchError(
                f"Reading body of {locator} failed: {e}", bucket=locator.bucket, key=locator.key
            ) from e
        return FetchedObject(locator=locator, body=body)


class ImageResizerService(ImageResizer):
    """Pillow-backed resizer with no I/O dependencies."""

    def __init__(self, guard: ResizeGuard = DEFAULT_RESIZE_GUARD):
        self._guard = guard

    @property
    def guard(self) -> ResizeGuard:
        return self._guard

    def resize(self, image_bytes: bytes, size: SizeSpec) -> bytes:
        """Decode, apply the resize guard and re-encode as JPEG."""
        try:
            image = decode_image(image_bytes)
        except DecodeError as exc:
            raise DecodeError(f"{exc} (size {size.name})", size_name=size.name) from exc

        resized = resize_image(image, size, self._guard)
        return encode_variant(resized)


class ZipArchiveBuilder(ArchiveBuilder):
    """Builds deflated zip archives in memory."""

    def __init__(self, preserve_leading_slash: bool = False):
        self._preserve_leading_slash = preserve_leading_slash

    def build(self, base_name: str, variants: Mapping[str, bytes]) -> bytes:
        with batch_error_handler():
            return build_archive(base_name, variants, self._preserve_leading_slash)


class S3ObjectUploader(ObjectUploader):
    """Single-attempt S3 writer that reports failures instead of raising them."""

    def __init__(self, s3_client: S3ClientProtocol, logger: LoggerProtocol):
        self._s3_client = s3_client
        self._logger = logger

    @with_error_handling(UploadError)
    def _put_object(
        self, locator: StorageLocator, body: bytes, tags: Optional[Mapping[str, str]]
    ) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}
        if tags:
            extra["Tagging"] = encode_tags(tags)
        return self._s3_client.put_object(
            Bucket=locator.bucket,
            Key=locator.key,
            Body=body,
            ContentType=ARCHIVE_CONTENT_TYPE,
            **extra,
        )

    def upload(
        self,
        locator: StorageLocator,
        body: bytes,
        tags: Optional[Mapping[str, str]] = None,
    ) -> UploadOutcome:
        self._logger.debug(f"Uploading {len(body)} bytes to {locator}")
        try:
            self._put_object(locator, body, tags)
        except Exception as e:  # noqa: BLE001
            self._logger.error(f"Upload to {locator} failed: {e}")
            return UploadOutcome(success=False, error=str(e))
        return UploadOutcome(success=True)


class RecordProcessor:
    """
    Runs fetch -> resize -> archive -> destination -> upload for one record.

    Every failure ends up in the returned RecordResult; nothing raised by a
    single record escapes ``process``. The transform step is exposed on its
    own so that async batch processors can run it in a worker thread around
    their own I/O.
    """

    def __init__(
        self,
        fetcher: ObjectFetcher,
        resizer: ImageResizer,
        archiver: ArchiveBuilder,
        uploader: ObjectUploader,
        config: PipelineConfig,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._fetcher = fetcher
        self._resizer = resizer
        self._archiver = archiver
        self._uploader = uploader
        self._config = config
        self._logger = logger
        self._metrics_collector = metrics_collector

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def logger(self) -> LoggerProtocol:
        return self._logger

    @property
    def metrics_collector(self) -> Optional[MetricsCollector]:
        return self._metrics_collector

    def destination_for(self, locator: StorageLocator) -> StorageLocator:
        """Locator of the archive written for a source object."""
        return StorageLocator(
            bucket=self._config.dest_bucket or locator.bucket,
            key=calculate_archive_key(locator.key),
        )

    def start(self, locator: StorageLocator) -> Tuple[RecordResult, LogContext]:
        """Create the result and log context for a record and log its start."""
        correlation_id = f"rec_{locator.key}_{int(time.time() * 1000)}"
        log_context = LogContext(
            correlation_id=correlation_id,
            operation="process_record",
            component="record_processor",
        ).with_metadata(bucket=locator.bucket, key=locator.key)

        self._logger.info("Processing record", log_context)
        result = RecordResult(
            bucket=locator.bucket,
            source_key=locator.key,
            stage=RecordStage.FETCHING,
        )
        return result, log_context

    def is_skipped(self, locator: StorageLocator) -> bool:
        suffixes = tuple(s.lower() for s in self._config.skip_suffixes)
        return bool(suffixes) and locator.key.lower().endswith(suffixes)

    def resize_all(
        self, image_bytes: bytes, log_context: LogContext
    ) -> Tuple[Dict[str, bytes], List[str]]:
        """
        Produce one variant per catalog size.

        Returns:
            Variants in catalog order and the names of sizes that failed to decode

        Raises:
            DecodeError: Under FAIL_RECORD, on the first undecodable size
        """
        variants: Dict[str, bytes] = {}
        failed: List[str] = []

        for size in self._config.catalog.sizes:
            try:
                variants[size.name] = self._resizer.resize(image_bytes, size)
            except DecodeError as exc:
                if self._config.decode_failure_policy == DecodeFailurePolicy.FAIL_RECORD:
                    raise
                failed.append(size.name)
                self._logger.warning(
                    f"Skipping variant {size.name}",
                    log_context.with_operation("resize").with_metadata(error=str(exc)),
                )

        return variants, failed

    def transform(
        self, fetched: FetchedObject, result: RecordResult, log_context: LogContext
    ) -> Optional[Tuple[StorageLocator, bytes]]:
        """
        Resize, archive and compute the destination of a fetched object.

        Updates ``result`` as stages complete. Returns None when the record is
        skipped (empty catalog with ``upload_empty_archive`` off).
        """
        locator = fetched.locator
        catalog = self._config.catalog

        result.stage = RecordStage.RESIZING
        with timed_stage("resize", self._metrics_collector, key=locator.key):
            variants, failed = self.resize_all(fetched.body, log_context)
        result.variant_count = len(variants)
        result.failed_variants = failed

        if len(catalog) and not variants:
            raise ImageProcessingError(
                f"No variant could be produced for {locator} ({', '.join(failed)} failed)"
            )
        if not len(catalog) and not self._config.upload_empty_archive:
            result.status = RecordStatus.SKIPPED
            self._logger.info("Empty size catalog, skipping upload", log_context)
            return None

        result.stage = RecordStage.ARCHIVING
        with timed_stage("archive", self._metrics_collector, key=locator.key):
            archive = self._archiver.build(derive_base_name(locator.key), variants)

        destination = self.destination_for(locator)
        result.stage = RecordStage.DESTINATION_COMPUTED
        result.dest_key = destination.key
        return destination, archive

    def check_upload(self, outcome: UploadOutcome, destination: StorageLocator) -> None:
        """Turn a failed upload outcome into a record failure."""
        if not outcome.success:
            raise UploadError(
                f"Upload to {destination} failed: {outcome.error}",
                bucket=destination.bucket,
                key=destination.key,
            )

    def complete(self, result: RecordResult, log_context: LogContext, started: float) -> RecordResult:
        result.stage = RecordStage.DONE
        result.status = RecordStatus.DONE
        result.processing_time = time.time() - started
        self._logger.info(
            "Archive uploaded",
            log_context.with_metadata(dest_key=result.dest_key),
            processing_time_ms=result.processing_time * 1000,
        )
        return result

    def fail(
        self,
        result: RecordResult,
        error: BaseException,
        log_context: LogContext,
        started: float,
    ) -> RecordResult:
        """Mark the record failed at its current stage and log enough to replay it."""
        result.status = RecordStatus.FAILED
        result.error = str(error) or type(error).__name__
        result.processing_time = time.time() - started

        label = "Record failed" if isinstance(error, ImageVariantsError) else "Record failed unexpectedly"
        self._logger.error(
            label,
            log_context.with_metadata(stage=result.stage.value, error=result.error),
        )
        return result

    def skip(self, result: RecordResult, log_context: LogContext, reason: str) -> RecordResult:
        result.status = RecordStatus.SKIPPED
        result.error = reason
        self._logger.info(f"Skipping record: {reason}", log_context)
        return result

    def process(self, locator: StorageLocator) -> RecordResult:
        """Run the full pipeline for one storage locator."""
        started = time.time()
        result, log_context = self.start(locator)

        if self.is_skipped(locator):
            return self.skip(result, log_context, "suffix is in skip_suffixes")

        try:
            with timed_stage("fetch", self._metrics_collector, key=locator.key):
                fetched = self._fetcher.fetch(locator)

            prepared = self.transform(fetched, result, log_context)
            if prepared is None:
                result.processing_time = time.time() - started
                return result
            destination, archive = prepared

            result.stage = RecordStage.UPLOADING
            with timed_stage("upload", self._metrics_collector, key=destination.key):
                outcome = self._uploader.upload(destination, archive, self._config.upload_tags)
                self.check_upload(outcome, destination)
        except Exception as e:  # noqa: BLE001
            return self.fail(result, e, log_context, started)

        return self.complete(result, log_context, started)


def parse_failure_result(record: ParsedRecord) -> RecordResult:
    """Result for a notification item that did not yield a locator."""
    return RecordResult(
        source_key=record.origin,
        status=RecordStatus.FAILED,
        stage=RecordStage.PARSE,
        error=record.error,
    )


class NotificationOrchestrator:
    """Entry point of the core: one notification batch in, one BatchReport out."""

    def __init__(self, batch_processor: BatchProcessor, logger: LoggerProtocol):
        self._batch_processor = batch_processor
        self._logger = logger

    def handle(self, event: Mapping[str, Any]) -> BatchReport:
        start_time = time.time()

        try:
            records = extract_records(event)
        except EventParseError as exc:
            self._logger.error(f"Notification batch could not be parsed: {exc}")
            records = [ParsedRecord(error=str(exc), origin="Records")]

        if not records:
            self._logger.info("Notification contained no storage-change records")
            return BatchReport(processing_time=time.time() - start_time)

        self._logger.info(f"Processing {len(records)} storage-change record(s)")

        with BatchOperationContextManager("Notification batch") as batch:
            results = self._batch_processor.process_batch(records)
            batch.add_results(results)

        return BatchReport(
            results=results,
            failure_summary=batch.failures,
            processing_time=time.time() - start_time,
        )
