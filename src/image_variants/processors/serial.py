"""Serial processor implementation - processes records one by one."""

from typing import List

from ..core.models import ParsedRecord, RecordResult
from ..core.protocols import BatchProcessor
from ..core.services import RecordProcessor
from .common import process_single_record


class SerialBatchProcessor(BatchProcessor):
    """Processes records in notification order in the current thread."""

    def __init__(self, record_processor: RecordProcessor):
        self._record_processor = record_processor

    def process_batch(self, records: List[ParsedRecord]) -> List[RecordResult]:
        results = []

        for record in records:
            result = process_single_record(self._record_processor, record)
            results.append(result)

        return results
