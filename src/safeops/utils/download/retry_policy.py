"""
Retry Policy with exponential backoff orchestration.

The downloader itself never retries. Calling layers that want retries wrap
it with download_with_retry(), which only re-attempts transient transport
failures; HTTP status, checksum and cancellation errors surface at once.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .downloader import DownloadOptions, download_file
from .errors import ChecksumMismatchError, DownloadCancelledError, HttpStatusError, TooManyRedirectsError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_PATTERNS = (
    "econnreset",
    "connection reset",
    "etimedout",
    "timed out",
    "econnrefused",
    "connection refused",
    "socket hang up",
    "remote end closed connection",
    "enotfound",
    "name or service not known",
    "temporary failure in name resolution",
    "epipe",
    "broken pipe",
)

_NEVER_RETRY = (HttpStatusError, ChecksumMismatchError, DownloadCancelledError, TooManyRedirectsError)


def is_retryable_error(error: BaseException) -> bool:
    """
    Check whether error is a transient transport failure worth another attempt.

    Walks the __cause__ chain, so a DownloadNetworkError wrapping a
    ConnectionResetError is retryable.
    """
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, _NEVER_RETRY):
            return False
        if isinstance(current, (ConnectionError, TimeoutError)):
            return True
        message = str(current).lower()
        if any(pattern in message for pattern in RETRYABLE_PATTERNS):
            return True
        current = current.__cause__
    return False


class RetryPolicy:
    """Exponential backoff retry orchestration."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        backoff_factor: float = 2.0,
    ):
        """
        Initialize retry policy.

        Args:
            max_retries: Maximum number of retries after the first attempt
            initial_delay: Initial delay in seconds
            max_delay: Maximum delay in seconds
            backoff_factor: Delay multiplier for each retry
        """
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number attempt (0-indexed)."""
        return min(self.initial_delay * (self.backoff_factor**attempt), self.max_delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        should_retry: Callable[[Exception], bool] = is_retryable_error,
        on_retry: Optional[Callable[[int, Exception], None]] = None,
    ) -> T:
        """
        Execute operation with retry logic.

        Args:
            operation: Coroutine function to execute
            should_retry: Predicate deciding whether an exception is retryable
            on_retry: Optional callback(attempt, exception) called before each retry

        Returns:
            Result of operation

        Raises:
            The first non-retryable exception, or the last one once retries are exhausted
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not should_retry(e):
                    raise
                if attempt >= self.max_retries:
                    logger.error(f"Giving up after {attempt + 1} attempts: {e}")
                    raise

                delay = self.delay_for(attempt)
                logger.warning(f"Attempt {attempt + 1}/{self.max_retries + 1} failed: {e}; retrying in {delay:.1f}s")
                if on_retry:
                    on_retry(attempt, e)

                await asyncio.sleep(delay)
                attempt += 1


async def download_with_retry(
    url: str,
    destination: str,
    options: DownloadOptions,
    policy: Optional[RetryPolicy] = None,
    download: Callable[[str, str, DownloadOptions], Awaitable[None]] = download_file,
) -> None:
    """
    Download with retries on transient network errors.

    A retried attempt resumes from the part file the failed attempt left behind.
    """
    policy = policy or RetryPolicy()
    await policy.execute(lambda: download(url, destination, options))
