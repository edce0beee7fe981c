"""
High-level download orchestrator with modular components.

Coordinates HTTP client, resume manager, chunk writer, progress reporter and
atomic writer. Each hop of a download probes for a resumable partial,
fetches (with a Range header when resuming), follows 301/302 redirects,
streams into <destination>.part and finally commits the part file to the
destination atomically. The destination never holds partial content.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Tuple
from urllib.parse import urljoin

from safeops.common.constants import DEFAULT_MAX_REDIRECTS, PROGRESS_INTERVAL_MS
from safeops.services.atomic_writer import AtomicWriter

from .chunk_writer import ChunkWriter
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
from .progress_reporter import ProgressReporter
from .resume_manager import DownloadContext, ResumeManager, probe_total_bytes

logger = logging.getLogger(__name__)

REDIRECT_STATUS_CODES = (301, 302)


class CancelToken:
    """Simple cancellation token for downloads."""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def is_cancelled(self) -> bool:
        return self.cancelled


class DownloadErrorHandler(Protocol):
    """
    Maps download failures to the exceptions raised to the caller.

    Lets callers replace the generic messages with domain-specific ones.
    """

    def handle_http_error(self, status_code: int, url: str) -> Optional[Exception]:
        """Return the exception for status_code, or None if the response can be streamed."""
        ...

    def handle_network_error(self, error: Exception, url: str) -> Exception:
        ...


class DefaultErrorHandler:
    """Generic messages distinguishing not found, forbidden and other failures."""

    def handle_http_error(self, status_code: int, url: str) -> Optional[Exception]:
        if status_code == 404:
            return ResourceNotFoundError(f"Resource not found (404): {url}", status_code, url)
        if status_code == 403:
            return AccessDeniedError(f"Access denied (403): {url}", status_code, url)
        if status_code not in (200, 206):
            return HttpStatusError(f"Download failed: HTTP {status_code} ({url})", status_code, url)
        return None

    def handle_network_error(self, error: Exception, url: str) -> Exception:
        return DownloadNetworkError(f"Network error: {error}. URL: {url}", url)


@dataclass
class DownloadOptions:
    """Collaborators and settings shared by every hop of a download."""

    http: object
    fs: object
    progress_writer: Optional[object] = None
    is_tty: Optional[bool] = None
    label: str = "Downloading"
    progress_interval: float = PROGRESS_INTERVAL_MS / 1000
    error_handler: Optional[DownloadErrorHandler] = None
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    expected_sha256: Optional[str] = None
    cancel_token: Optional[CancelToken] = None
    headers: Dict[str, str] = field(default_factory=dict)


class _StreamInterrupted(Exception):
    """Transport failure while reading the body, carrying the original error."""

    def __init__(self, error: Exception):
        super().__init__(str(error))
        self.error = error


def _check_cancelled(cancel_token: Optional[CancelToken], url: str) -> None:
    if cancel_token is not None and cancel_token.is_cancelled():
        raise DownloadCancelledError(f"Download cancelled: {url}")


async def download_file(url: str, destination: str, options: DownloadOptions) -> None:
    """
    Download url to destination with resume support.

    Redirects are followed as further hops of the same download, up to
    options.max_redirects of them.

    Args:
        url: Source URL
        destination: Target file path
        options: Collaborators, progress output and error classification

    Raises:
        HttpStatusError: Server answered with a status that cannot be downloaded
        DownloadNetworkError: Transport failure (or the error_handler's replacement)
        TooManyRedirectsError: More than max_redirects redirects
        ChecksumMismatchError: expected_sha256 given and not matched
        DownloadCancelledError: cancel_token was cancelled
    """
    handler = options.error_handler or DefaultErrorHandler()
    current_url = url

    parent = os.path.dirname(destination)
    if parent:
        await options.fs.mkdir(parent, recursive=True)

    for hop in range(options.max_redirects + 1):
        location = await _download_hop(current_url, destination, options, handler)
        if location is None:
            return
        next_url = urljoin(current_url, location)
        logger.info(f"Redirect {hop + 1}: {current_url} -> {next_url}")
        current_url = next_url

    await ResumeManager(destination, options.fs).cleanup()
    logger.error(f"Giving up on {url} after {options.max_redirects} redirects")
    raise TooManyRedirectsError(url, options.max_redirects, last_location=current_url)


async def _download_hop(url: str, destination: str, options: DownloadOptions, handler) -> Optional[str]:
    """
    Run one hop: probe, fetch, then either stream and finalize or report a redirect.

    Returns:
        Location of a redirect to follow, None once the destination is written
    """
    resume = ResumeManager(destination, options.fs)
    ctx = DownloadContext(url=url, destination=destination, part_path=resume.part_file)
    mid_stream = False

    try:
        _check_cancelled(options.cancel_token, url)

        ctx.has_partial = await resume.has_partial()
        if ctx.has_partial:
            ctx.total_bytes = await probe_total_bytes(options.http, url, options.headers)
            decision = await resume.plan(ctx.total_bytes)
            ctx.resume_from = decision.resume_from

        _check_cancelled(options.cancel_token, url)

        headers = dict(options.headers)
        if ctx.is_resuming:
            headers["Range"] = f"bytes={ctx.resume_from}-"

        try:
            response = await options.http.get(url, headers=headers)
        except DownloadError:
            raise
        except Exception as e:
            raise _StreamInterrupted(e) from e

        try:
            if response.status_code in REDIRECT_STATUS_CODES and response.location:
                return response.location

            error = handler.handle_http_error(response.status_code, url)
            if error is not None:
                raise error

            if ctx.is_resuming and response.status_code == 200:
                logger.warning(f"Server ignored range request for {url}, restarting from byte 0")
                ctx.resume_from = 0
            if not ctx.is_resuming:
                await resume.reset()

            if response.content_length:
                ctx.total_bytes = response.content_length + ctx.resume_from

            mid_stream = True
            writer, reporter = await _stream_to_part(response, ctx, options)
            mid_stream = False
        finally:
            response.close()

        await _finalize(resume, writer, reporter, ctx, options)
        logger.info(f"Downloaded {url} to {destination} ({writer.get_bytes_written()} bytes)")
        return None

    except (DownloadCancelledError, asyncio.CancelledError):
        if not (mid_stream and ctx.total_bytes > 0):
            await resume.cleanup()
        else:
            logger.info(f"Download of {url} cancelled, keeping {ctx.part_path} for resume")
        raise
    except _StreamInterrupted as e:
        if mid_stream and ctx.total_bytes > 0:
            logger.warning(f"Download of {url} interrupted, keeping {ctx.part_path} for resume")
        else:
            await resume.cleanup()
        logger.error(f"Network error downloading {url}: {e.error}")
        raise handler.handle_network_error(e.error, url) from e.error
    except BaseException:
        await resume.cleanup()
        raise


async def _stream_to_part(
    response, ctx: DownloadContext, options: DownloadOptions
) -> Tuple[ChunkWriter, Optional[ProgressReporter]]:
    writer = await ChunkWriter(options.fs, ctx.part_path, resume_from_byte=ctx.resume_from).open()
    reporter = _create_progress_reporter(ctx, options)
    downloaded = ctx.resume_from

    stream = response.stream.__aiter__()
    while True:
        _check_cancelled(options.cancel_token, ctx.url)
        try:
            chunk = await stream.__anext__()
        except StopAsyncIteration:
            break
        except DownloadError:
            raise
        except Exception as e:
            raise _StreamInterrupted(e) from e

        await writer.write_chunk(chunk)
        downloaded += len(chunk)
        if reporter:
            reporter.update(downloaded)

    return writer, reporter


def _create_progress_reporter(ctx: DownloadContext, options: DownloadOptions) -> Optional[ProgressReporter]:
    if options.progress_writer is None or ctx.total_bytes <= 0:
        return None

    reporter = ProgressReporter(
        ctx.total_bytes,
        options.is_tty,
        options.progress_writer,
        label=options.label,
        interval=options.progress_interval,
    )
    if ctx.resume_from > 0:
        reporter.update(ctx.resume_from)
    return reporter


async def _finalize(
    resume: ResumeManager,
    writer: ChunkWriter,
    reporter: Optional[ProgressReporter],
    ctx: DownloadContext,
    options: DownloadOptions,
):
    if options.expected_sha256 and not writer.verify(options.expected_sha256):
        raise ChecksumMismatchError(options.expected_sha256, writer.hexdigest(), ctx.url)

    if reporter:
        reporter.complete()
    await resume.finalize(AtomicWriter(options.fs))
