"""AsyncIO processor implementation - uses async/await for concurrent I/O."""

import asyncio
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, List, Mapping, Optional

import aioboto3

from ..core.exceptions import FetchError, RecordTimeoutError
from ..core.models import (
    FetchedObject,
    ParsedRecord,
    RecordResult,
    RecordStage,
    StorageLocator,
    UploadOutcome,
)
from ..core.observability import LogContext, timed_stage
from ..core.protocols import BatchProcessor, LoggerProtocol
from ..core.services import (
    HTTP_OK,
    RecordProcessor,
    encode_tags,
    parse_failure_result,
    response_status,
)
from ..core.archive import ARCHIVE_CONTENT_TYPE

# Returns an async context manager yielding an S3 client
AsyncClientFactory = Callable[[], Any]


def default_client_factory() -> Any:
    session = aioboto3.Session()
    return session.client("s3")


async def fetch_object_async(s3_client: Any, locator: StorageLocator) -> bytes:
    """Download an object's bytes; non-200 responses and client errors raise FetchError."""
    try:
        response = await s3_client.get_object(Bucket=locator.bucket, Key=locator.key)
    except Exception as e:  # noqa: BLE001
        raise FetchError(
            f"S3 operation failed in get_object: {e}", bucket=locator.bucket, key=locator.key
        ) from e

    status = response_status(response)
    if status != HTTP_OK:
        raise FetchError(
            f"S3 Retrieve Object Failed: key-{locator.key} (status {status})",
            bucket=locator.bucket,
            key=locator.key,
        )

    async with response["Body"] as stream:
        return await stream.read()


async def upload_object_async(
    s3_client: Any,
    locator: StorageLocator,
    body: bytes,
    logger: LoggerProtocol,
    tags: Optional[Mapping[str, str]] = None,
    log_context: Optional[LogContext] = None,
) -> UploadOutcome:
    """Single put_object attempt; failures are logged and come back as an UploadOutcome."""
    extra = {"Tagging": encode_tags(tags)} if tags else {}
    try:
        await s3_client.put_object(
            Bucket=locator.bucket,
            Key=locator.key,
            Body=body,
            ContentType=ARCHIVE_CONTENT_TYPE,
            **extra,
        )
    except Exception as e:  # noqa: BLE001
        logger.error(f"Upload to {locator} failed: {e}", log_context)
        return UploadOutcome(success=False, error=str(e))
    return UploadOutcome(success=True)


def _copy_result(target: RecordResult, source: RecordResult) -> None:
    for name in RecordResult.model_fields:
        setattr(target, name, getattr(source, name))


class AsyncioBatchProcessor(BatchProcessor):
    """
    Processes records concurrently over one shared aioboto3 client.

    A semaphore bounds in-flight records to ``concurrency``. Resizing and
    archiving run on a thread pool owned by the batch so they do not block the
    event loop. When ``timeout_seconds`` is set, records still running at the
    deadline are cancelled (aborting their in-flight S3 calls) and reported as
    failed; the batch returns without waiting for transforms already running
    in worker threads, whose output is discarded.
    """

    def __init__(
        self,
        record_processor: RecordProcessor,
        concurrency: int = 4,
        timeout_seconds: Optional[float] = None,
        client_factory: Optional[AsyncClientFactory] = None,
    ):
        self._record_processor = record_processor
        self._concurrency = max(1, concurrency)
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory or default_client_factory

    def process_batch(self, records: List[ParsedRecord]) -> List[RecordResult]:
        """Synchronous wrapper running the batch in a fresh event loop."""
        return asyncio.run(self.process_batch_async(records))

    async def process_batch_async(self, records: List[ParsedRecord]) -> List[RecordResult]:
        if not records:
            return []

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout_seconds if self._timeout_seconds else None
        semaphore = asyncio.Semaphore(self._concurrency)
        executor = ThreadPoolExecutor(
            max_workers=self._concurrency, thread_name_prefix="image-variants-transform"
        )

        try:
            async with self._client_factory() as s3_client:
                tasks = [
                    self._process_record(s3_client, record, semaphore, deadline, executor)
                    for record in records
                ]
                # Order of gather results matches input order
                return list(await asyncio.gather(*tasks))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    async def _process_record(
        self,
        s3_client: Any,
        record: ParsedRecord,
        semaphore: asyncio.Semaphore,
        deadline: Optional[float],
        executor: Executor,
    ) -> RecordResult:
        if record.locator is None:
            return parse_failure_result(record)

        processor = self._record_processor
        started = time.time()
        result, log_context = processor.start(record.locator)

        if processor.is_skipped(record.locator):
            return processor.skip(result, log_context, "suffix is in skip_suffixes")

        try:
            async with semaphore:
                remaining = None
                if deadline is not None:
                    remaining = deadline - asyncio.get_running_loop().time()
                    if remaining <= 0:
                        raise asyncio.TimeoutError()
                completed = await asyncio.wait_for(
                    self._run_pipeline(s3_client, record.locator, result, log_context, executor),
                    timeout=remaining,
                )
        except asyncio.TimeoutError:
            error = RecordTimeoutError(f"Timed out during {result.stage.value}")
            return processor.fail(result, error, log_context, started)
        except Exception as e:  # noqa: BLE001
            return processor.fail(result, e, log_context, started)

        if not completed:
            result.processing_time = time.time() - started
            return result
        return processor.complete(result, log_context, started)

    async def _run_pipeline(
        self,
        s3_client: Any,
        locator: StorageLocator,
        result: RecordResult,
        log_context: LogContext,
        executor: Executor,
    ) -> bool:
        processor = self._record_processor
        metrics = processor.metrics_collector

        with timed_stage("fetch", metrics, key=locator.key):
            body = await fetch_object_async(s3_client, locator)

        # The worker thread updates its own copy; it is merged back only once
        # the transform has finished, so a cancelled record keeps its stage.
        result.stage = RecordStage.RESIZING
        work = result.model_copy(deep=True)
        transform = asyncio.get_running_loop().run_in_executor(
            executor,
            processor.transform,
            FetchedObject(locator=locator, body=body),
            work,
            log_context,
        )
        try:
            prepared = await transform
        finally:
            if transform.done() and not transform.cancelled():
                _copy_result(result, work)

        if prepared is None:
            return False
        destination, archive = prepared

        result.stage = RecordStage.UPLOADING
        with timed_stage("upload", metrics, key=destination.key):
            outcome = await upload_object_async(
                s3_client,
                destination,
                archive,
                processor.logger,
                processor.config.upload_tags,
                log_context.with_operation("upload"),
            )
            processor.check_upload(outcome, destination)
        return True
