"""Multithreaded processor implementation - uses a bounded thread pool."""

from typing import Dict, List, Optional
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from ..core.models import ParsedRecord, RecordResult, RecordStage, RecordStatus
from ..core.protocols import BatchProcessor
from ..core.services import RecordProcessor
from .common import process_single_record


class ThreadPoolBatchProcessor(BatchProcessor):
    """
    Processes records concurrently on at most ``concurrency`` threads.

    Records share nothing but the S3 client, which boto3 allows across
    threads. The pool size also bounds how many source images and their
    variants are held in memory at once.
    """

    def __init__(self, record_processor: RecordProcessor, concurrency: int = 4):
        self._record_processor = record_processor
        self._concurrency = max(1, concurrency)

    def process_batch(self, records: List[ParsedRecord]) -> List[RecordResult]:
        if not records:
            return []

        results: List[Optional[RecordResult]] = [None] * len(records)
        max_workers = min(self._concurrency, len(records))

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index: Dict[Future, int] = {
                executor.submit(process_single_record, self._record_processor, record): i
                for i, record in enumerate(records)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    record = records[index]
                    results[index] = RecordResult(
                        bucket=record.locator.bucket if record.locator else "",
                        source_key=record.locator.key if record.locator else record.origin,
                        status=RecordStatus.FAILED,
                        stage=RecordStage.FETCHING,
                        error=str(e),
                    )

        return [r for r in results if r is not None]
