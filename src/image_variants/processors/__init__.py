"""Batch processors with different concurrency strategies."""

from .serial import SerialBatchProcessor
from .multithread import ThreadPoolBatchProcessor
from .asyncio_processor import AsyncioBatchProcessor

PROCESSORS = {
    "serial": SerialBatchProcessor,
    "multithread": ThreadPoolBatchProcessor,
    "asyncio": AsyncioBatchProcessor,
}

__all__ = [
    "PROCESSORS",
    "SerialBatchProcessor",
    "ThreadPoolBatchProcessor",
    "AsyncioBatchProcessor",
]
