"""
Queue-based logging for the safeops command.

Download streaming and atomic writes run on the event loop, so log records
are handed to a QueueListener thread instead of being written inline.
"""

import atexit
import logging
import logging.handlers
import queue
import sys
from typing import List, Optional

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_listener: Optional[logging.handlers.QueueListener] = None
_atexit_registered = False


class RotationTolerantFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating file handler that keeps appending when the log file cannot be rotated."""

    def doRollover(self):
        try:
            super().doRollover()
        except PermissionError as e:
            print(f"Warning: could not rotate {self.baseFilename}: {e}", file=sys.stderr)


def _console_handler(log_level) -> logging.Handler:
    # stderr, so progress lines on stdout are never interleaved with log output
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(log_file_path: str, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = RotationTolerantFileHandler(
        log_file_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_async_logging(
    log_level=logging.INFO,
    log_file_path: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> None:
    """
    Route all records through a queue to the console and/or a rotating log file.

    Calling it again replaces the previous listener and root handlers.
    """
    global _listener, _atexit_registered

    shutdown_async_logging(close_handlers=False)

    targets: List[logging.Handler] = []
    if console:
        targets.append(_console_handler(log_level))
    if log_file_path:
        targets.append(_file_handler(log_file_path, max_bytes, backup_count))

    records: queue.Queue = queue.Queue()
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [logging.handlers.QueueHandler(records)]

    _listener = logging.handlers.QueueListener(records, *targets, respect_handler_level=True)
    _listener.start()

    if not _atexit_registered:
        atexit.register(shutdown_async_logging)
        _atexit_registered = True

    logging.getLogger(__name__).debug(
        f"Logging to {log_file_path or 'console only'} at level {logging.getLevelName(log_level)}"
    )


def shutdown_async_logging(close_handlers: bool = True):
    """Drain the queue and stop the listener thread. Safe to call repeatedly."""
    global _listener

    if _listener is None:
        return

    listener, _listener = _listener, None
    listener.stop()

    if close_handlers:
        logging.shutdown()
        return
    for handler in listener.handlers:
        handler.close()
