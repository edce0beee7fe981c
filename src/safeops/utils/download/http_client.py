"""
HTTP Client with configurable timeout and streaming responses.

Provides the HTTP capability used by the downloader: HEAD and GET requests
with arbitrary headers (e.g. Range), responses of any status returned as
values, and bodies exposed as async chunk streams. Redirects are NOT
followed here; the downloader handles them hop by hop.
"""

import asyncio
import logging
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, Optional, Protocol

import certifi

from safeops.common.constants import DEFAULT_CHUNK_SIZE, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


def _create_ssl_context() -> ssl.SSLContext:
    """Create SSL context with certifi certificates (some Python builds lack default CA certs)."""
    context = ssl.create_default_context(cafile=certifi.where())
    logger.debug("Using certifi CA bundle for SSL: %s", certifi.where())
    return context


async def _empty_stream() -> AsyncIterator[bytes]:
    return
    yield  # pragma: no cover


@dataclass
class HttpResponse:
    """HTTP response with lower-cased headers and an async content iterator."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    stream: AsyncIterator[bytes] = field(default_factory=_empty_stream)
    closer: Optional[Callable[[], None]] = None

    @property
    def content_length(self) -> Optional[int]:
        value = self.headers.get("content-length")
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location") or None

    def close(self) -> None:
        if self.closer is not None:
            self.closer()
            self.closer = None


class HttpClientService(Protocol):
    """Protocol for the HTTP capability consumed by the downloader."""

    async def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        ...

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        ...


class _NoRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Surface 3xx responses to the caller instead of following them."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


class HttpClient:
    """urllib-based HTTP client with configurable timeout and headers."""

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
            chunk_size: Size of body chunks yielded by response streams
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.chunk_size = chunk_size
        self._opener = urllib.request.build_opener(
            _NoRedirectHandler(),
            urllib.request.HTTPSHandler(context=_create_ssl_context()),
        )

    async def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        """
        Execute HEAD request.

        Raises:
            urllib.error.URLError: Network failure
        """
        response = await self._request(url, "HEAD", headers)
        response.close()
        return response

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        """
        Execute GET request; the body is read lazily through response.stream.

        Args:
            url: URL to fetch
            headers: Extra request headers (e.g. {"Range": "bytes=512-"})

        Returns:
            HttpResponse of any status code

        Raises:
            urllib.error.URLError: Network failure
        """
        return await self._request(url, "GET", headers)

    async def _request(self, url: str, method: str, headers: Optional[Dict[str, str]]) -> HttpResponse:
        request_headers = {"User-Agent": self.user_agent}
        request_headers.update(headers or {})
        req = urllib.request.Request(url, headers=request_headers, method=method)

        raw = await asyncio.to_thread(self._open, req)

        return HttpResponse(
            status_code=raw.status if raw.status is not None else raw.getcode(),
            headers={key.lower(): value for key, value in raw.headers.items()},
            stream=self._iter_content(raw),
            closer=raw.close,
        )

    def _open(self, req: urllib.request.Request):
        try:
            return self._opener.open(req, timeout=self.timeout)
        except urllib.error.HTTPError as e:
            # Error statuses are regular responses for our callers
            logger.debug(f"{req.get_method()} {req.full_url} answered HTTP {e.code}")
            return e
        except urllib.error.URLError as e:
            logger.error(f"HTTP request failed: {e}")
            raise

    async def _iter_content(self, raw) -> AsyncIterator[bytes]:
        """
        Iterate response content in chunks.

        Yields:
            Chunks of bytes
        """
        try:
            while True:
                chunk = await asyncio.to_thread(raw.read, self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            raw.close()
