"""
Progress Reporter for byte-count streams.

Renders throttled progress text to any writer with a write(str) method:
a single redrawn line on a terminal, discrete log lines otherwise.
"""

import time
from typing import Callable, Optional

from safeops.common.constants import PROGRESS_INTERVAL_MS

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: float) -> str:
    """Human readable size with 1024-based units, e.g. 1536 -> '1.5 KB'."""
    size = float(num_bytes)
    for unit in _UNITS:
        if abs(size) < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {_UNITS[-1]}"


def calculate_speed(bytes_transferred: int, start_time: float, now: float) -> float:
    """Average throughput in bytes per second, 0 when no time has elapsed."""
    elapsed = now - start_time
    if elapsed <= 0:
        return 0.0
    return bytes_transferred / elapsed


def format_progress(
    bytes_transferred: int,
    total_bytes: int,
    speed: float,
    is_tty: bool,
    label: str = "Downloading",
) -> str:
    percentage = round(bytes_transferred / total_bytes * 100) if total_bytes > 0 else 0

    if is_tty:
        return f"\r{label}... {percentage}% ({format_bytes(bytes_transferred)}) @ {format_bytes(speed)}/s"
    return f"{label}... {percentage}% complete\n"


class ProgressReporter:
    """Throttled progress output for a single transfer."""

    def __init__(
        self,
        total_bytes: int,
        is_tty: Optional[bool],
        writer,
        label: str = "Downloading",
        interval: float = PROGRESS_INTERVAL_MS / 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize progress reporter.

        Args:
            total_bytes: Expected size of the complete artifact
            is_tty: Render mode; None asks writer.isatty() when available
            writer: Object with write(str)
            label: Prefix of every progress line
            interval: Minimum seconds between two renders
            clock: Time source in seconds
        """
        if is_tty is None:
            isatty = getattr(writer, "isatty", None)
            is_tty = bool(isatty()) if callable(isatty) else False

        self.total_bytes = total_bytes
        self.is_tty = is_tty
        self.writer = writer
        self.label = label
        self.interval = interval
        self._clock = clock
        self.start_time = clock()
        self.bytes_transferred = 0
        self._last_render: Optional[float] = None

    def update(self, bytes_transferred: int) -> None:
        """Record the running byte count and render unless throttled."""
        self.bytes_transferred = bytes_transferred

        now = self._clock()
        if self._last_render is not None and now - self._last_render < self.interval:
            return
        self._last_render = now

        speed = calculate_speed(bytes_transferred, self.start_time, now)
        self.writer.write(format_progress(bytes_transferred, self.total_bytes, speed, self.is_tty, self.label))

    def complete(self) -> None:
        elapsed = self._clock() - self.start_time
        prefix = "\r" if self.is_tty else ""
        self.writer.write(f"{prefix}✅ Download complete: {format_bytes(self.total_bytes)} in {elapsed:.1f}s\n")
