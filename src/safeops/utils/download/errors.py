"""Exceptions raised by the download module."""

from typing import Optional


class DownloadError(Exception):
    """Base class for download failures."""


class HttpStatusError(DownloadError):
    """Server answered with a status that cannot be downloaded."""

    def __init__(self, message: str, status_code: int, url: str):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class ResourceNotFoundError(HttpStatusError):
    pass


class AccessDeniedError(HttpStatusError):
    pass


class DownloadNetworkError(DownloadError):
    """Transport failure (connection, timeout, aborted stream)."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class TooManyRedirectsError(DownloadError):
    def __init__(self, url: str, max_redirects: int, last_location: Optional[str] = None):
        super().__init__(f"Too many redirects (more than {max_redirects}) starting at {url}")
        self.url = url
        self.max_redirects = max_redirects
        self.last_location = last_location


class ChecksumMismatchError(DownloadError):
    def __init__(self, expected: str, actual: str, url: str):
        super().__init__(f"Checksum mismatch for {url}: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual
        self.url = url


class DownloadCancelledError(DownloadError, InterruptedError):
    """Download stopped through a CancelToken."""
