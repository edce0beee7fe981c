"""
General logging utilities for real-time log visibility.

Provides:
- flush_logs() for immediate log output before the process exits or reports
- TimingSpan for measuring and logging operation durations
"""

import logging
import logging.handlers
import sys
import time
from typing import Optional

logger = logging.getLogger(__name__)


def flush_logs():
    """
    Force immediate flush of all log handlers.

    Necessary with async logging (QueueHandler) so that log messages appear
    before progress output or error reports written directly to the console.
    """
    for logger_name in list(logging.Logger.manager.loggerDict):
        module_logger = logging.getLogger(logger_name)
        for handler in module_logger.handlers:
            _flush_handler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        _flush_handler(handler)
        # If it's a QueueHandler, yield to let queue process
        if isinstance(handler, logging.handlers.QueueHandler):
            time.sleep(0.001)

    sys.stdout.flush()
    sys.stderr.flush()


def _flush_handler(handler):
    # None or failing handlers are skipped
    if handler is None:
        return
    try:
        handler.flush()
    except Exception:
        pass


def _format_context(extra_context: dict) -> str:
    if not extra_context:
        return ""
    return "[" + " ".join(f"{key}={value}" for key, value in extra_context.items()) + "] "


class TimingSpan:
    """
    Context manager for timing operations and logging duration.

    Usage:
        with TimingSpan("download", url=url):
            ...
    """

    def __init__(self, operation: str, **extra_context):
        self.operation = operation
        self.extra_context = extra_context
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.time()
        logger.debug(f"{_format_context(self.extra_context)}{self.operation} - started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration_ms = (self.end_time - self.start_time) * 1000
        prefix = _format_context(self.extra_context)

        if exc_type is not None:
            logger.error(f"{prefix}{self.operation} - failed after {duration_ms:.0f}ms: {exc_val}")
        else:
            logger.info(f"{prefix}{self.operation} - completed in {duration_ms:.0f}ms")

        return False  # Don't suppress exceptions

    def get_duration_ms(self) -> Optional[float]:
        """Get duration in milliseconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return None
