"""Common functions shared across all batch processor implementations."""

from ..core.models import ParsedRecord, RecordResult
from ..core.services import RecordProcessor, parse_failure_result


def process_single_record(
    record_processor: RecordProcessor, record: ParsedRecord
) -> RecordResult:
    """Run one parsed record through the pipeline: Fetch → Resize → Archive → Upload."""
    if record.locator is None:
        return parse_failure_result(record)
    return record_processor.process(record.locator)
