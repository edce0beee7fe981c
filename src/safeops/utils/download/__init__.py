"""
Download Module for Resumable HTTP Downloads

Provides modular components for downloads that never leave a partial file at
the destination: resume from .part files, redirect following, throttled
progress output, and an opt-in retry wrapper with exponential backoff.
"""

from .downloader import CancelToken, DefaultErrorHandler, DownloadOptions, download_file
from .errors import (
    AccessDeniedError,
    ChecksumMismatchError,
    DownloadCancelledError,
    DownloadError,
    DownloadNetworkError,
    HttpStatusError,
    ResourceNotFoundError,
    TooManyRedirectsError,
)
from .http_client import HttpClient, HttpResponse
from .progress_reporter import ProgressReporter
from .retry_policy import RetryPolicy, download_with_retry, is_retryable_error

__all__ = [
    "AccessDeniedError",
    "CancelToken",
    "ChecksumMismatchError",
    "DefaultErrorHandler",
    "DownloadCancelledError",
    "DownloadError",
    "DownloadNetworkError",
    "DownloadOptions",
    "HttpClient",
    "HttpResponse",
    "HttpStatusError",
    "ProgressReporter",
    "ResourceNotFoundError",
    "RetryPolicy",
    "TooManyRedirectsError",
    "download_file",
    "download_with_retry",
    "is_retryable_error",
]
