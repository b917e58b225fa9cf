"""Centralized logging configuration for the image variants pipeline."""

import os
import sys
import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "image-variants"
NO_REQUEST_ID = "-"

# One invocation runs per Lambda container at a time; worker threads of that
# invocation read the same id.
_request_id = NO_REQUEST_ID


def set_request_id(request_id: Optional[str]) -> None:
    """Tag subsequent log lines with the current invocation's request id."""
    global _request_id
    _request_id = request_id or NO_REQUEST_ID


def current_request_id() -> str:
    return _request_id


class RequestIdFilter(logging.Filter):
    """Stamps every record passing through a handler with ``aws_request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.aws_request_id = _request_id
        return True


def _formatter(format_type: str) -> logging.Formatter:
    if format_type == "structured":
        return logging.Formatter(
            "%(asctime)s | %(aws_request_id)s | %(name)s | %(levelname)-8s | "
            "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return logging.Formatter(
        "%(asctime)s - %(aws_request_id)s - %(name)s - %(levelname)s - %(message)s"
    )


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Lines go to stdout, where Lambda forwards them to CloudWatch, and carry
    the request id set by ``set_request_id`` so a failed record can be traced
    back to the invocation that received it.

    Args:
        name: Logger name (defaults to "image-variants")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)

    requested = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, requested.upper(), logging.INFO))

    # Warm invocations reuse the logger; one handler only
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(_formatter(os.getenv("LOG_FORMAT", format_type).lower()))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return setup_logger(name)


logger = setup_logger()
