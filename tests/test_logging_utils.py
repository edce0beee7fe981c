"""
Tests for logging helpers.

flush_logs() must tolerate None and broken handlers; TimingSpan logs
completion and failure; async logging writes through its queue listener.
"""

import logging
from unittest.mock import MagicMock, Mock, patch

import pytest

from safeops.common.utils.async_logging import (
    RotationTolerantFileHandler,
    setup_async_logging,
    shutdown_async_logging,
)
from safeops.utils.logging_utils import TimingSpan, flush_logs


class TestFlushLogsRobustness:
    """Test flush_logs() handles edge cases gracefully."""

    def test_flush_logs_with_none_handler(self):
        """flush_logs() doesn't crash when a handler is None."""
        test_logger = logging.getLogger("test_none_handler")
        test_logger.handlers = [None]

        flush_logs()

        test_logger.handlers = []

    def test_flush_logs_with_mixed_handlers(self):
        """flush_logs() keeps flushing past broken handlers."""
        good_handler = Mock()
        good_handler.flush = MagicMock()

        broken_handler = Mock()
        broken_handler.flush.side_effect = OSError("Handler closed")

        test_logger = logging.getLogger("test_mixed_handlers")
        test_logger.handlers = [None, broken_handler, good_handler]

        flush_logs()

        assert broken_handler.flush.called
        assert good_handler.flush.called

        test_logger.handlers = []


class TestTimingSpan:
    def test_logs_completion(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="safeops.utils.logging_utils"):
            with TimingSpan("download", url="https://example.com/f") as span:
                pass

        assert span.get_duration_ms() is not None
        assert "[url=https://example.com/f] download - completed in" in caplog.text

    def test_logs_failure_and_reraises(self, caplog):
        with caplog.at_level(logging.ERROR, logger="safeops.utils.logging_utils"):
            with pytest.raises(OSError):
                with TimingSpan("write"):
                    raise OSError("disk full")

        assert "write - failed after" in caplog.text
        assert "disk full" in caplog.text


class TestAsyncLogging:
    def test_file_handler_receives_records(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        log_file = tmp_path / "safeops.log"

        try:
            setup_async_logging(logging.INFO, str(log_file), console=False)
            logging.getLogger("safeops.test").info("queued message")
            shutdown_async_logging(close_handlers=False)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)

        content = log_file.read_text(encoding="utf-8")
        assert "safeops.test INFO: queued message" in content

    def test_shutdown_is_idempotent(self):
        shutdown_async_logging(close_handlers=False)
        shutdown_async_logging(close_handlers=False)

    def test_failed_rotation_keeps_logging(self, tmp_path, capsys):
        handler = RotationTolerantFileHandler(str(tmp_path / "locked.log"), maxBytes=10, backupCount=1)
        try:
            with patch(
                "logging.handlers.RotatingFileHandler.doRollover", side_effect=PermissionError("in use")
            ):
                handler.doRollover()
        finally:
            handler.close()

        assert "could not rotate" in capsys.readouterr().err
