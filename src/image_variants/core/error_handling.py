# src/image_variants/core/error_handling.py

import functools
import logging
from typing import Dict, Iterable, List

from botocore.exceptions import BotoCoreError, ClientError
from PIL import UnidentifiedImageError

from .exceptions import DecodeError, ImageVariantsError, S3Error
from .models import RecordResult, RecordStatus


def client_error_code(exc: BaseException) -> str:
    """Return the S3 error code carried by a botocore ClientError, if any."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


def with_error_handling(s3_error=S3Error):
    """
    A decorator factory wrapping store and image calls with standardized error handling.

    botocore failures are re-raised as ``s3_error`` (so a fetch surfaces as
    FetchError and an upload as UploadError), Pillow identification failures
    as DecodeError. Pipeline errors pass through untouched.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + '.' + func.__name__)
            try:
                return func(*args, **kwargs)
            except ImageVariantsError:
                raise
            except (ClientError, BotoCoreError) as e:
                code = client_error_code(e)
                logger.error(f"S3 call '{func.__name__}' failed ({code or type(e).__name__}): {e}")
                raise s3_error(f"S3 operation failed in {func.__name__}: {e}") from e
            except UnidentifiedImageError as e:
                logger.error(f"Failed to identify image in '{func.__name__}': {e}")
                raise DecodeError(f"Failed to identify image in {func.__name__}: {e}") from e
            except Exception as e:
                logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
                raise
        return wrapper
    return decorator



def failure_item(result: RecordResult) -> str:
    """Replayable identifier of a record: its s3:// url, or its notification origin."""
    if result.bucket:
        return f"s3://{result.bucket}/{result.source_key}"
    return result.source_key


class BatchOperationContextManager:
    """
    Context manager turning the results of one batch into its failure summary.

    Each failed record was already logged with its own context when it failed,
    so on exit only one line naming the failed items is written. The collected
    ``failures`` are what the batch report and BatchProcessingError carry.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.failures: List[Dict[str, str]] = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} aborted after {len(self.failures)} failed record(s): {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif self.failures:
            items = ", ".join(f["item"] for f in self.failures)
            self.logger.warning(f"{self.operation_name}: {len(self.failures)} record(s) failed: {items}")
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")
        return False

    def add_result(self, result: RecordResult) -> None:
        """Record ``result`` in the summary if it failed."""
        if result.status != RecordStatus.FAILED:
            return
        self.failures.append(
            {"item": failure_item(result), "stage": result.stage.value, "error": result.error}
        )

    def add_results(self, results: Iterable[RecordResult]) -> None:
        for result in results:
            self.add_result(result)

    @property
    def error_count(self) -> int:
        return len(self.failures)
