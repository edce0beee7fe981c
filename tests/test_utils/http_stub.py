"""
HTTP stub for downloader tests.

FakeHttpClient implements the HttpClientService protocol against in-memory
routes, records every request, and can interrupt a body mid-stream to
simulate a dropped connection.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from safeops.utils.download.http_client import HttpResponse

_RANGE_PATTERN = re.compile(r"bytes=(\d+)-")


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


def make_response(
    status_code: int,
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    chunk_size: int = 4,
    fail_after: Optional[int] = None,
    error: Optional[Exception] = None,
) -> HttpResponse:
    """
    Build an HttpResponse whose stream yields body in chunk_size pieces.

    With fail_after set, the stream raises error (a connection reset by
    default) once fail_after bytes have been yielded.
    """

    async def stream():
        sent = 0
        for start in range(0, len(body), chunk_size):
            if fail_after is not None and sent >= fail_after:
                raise error or ConnectionResetError("Connection reset by peer")
            chunk = body[start : start + chunk_size]
            sent += len(chunk)
            yield chunk

    response = HttpResponse(status_code=status_code, headers=dict(headers or {}), stream=stream())
    response.closer = lambda: setattr(response, "closed", True)
    return response


class FakeHttpClient:
    """In-memory HttpClientService. Unknown URLs answer 404."""

    def __init__(self):
        self.routes: Dict[str, Callable[[str, Dict[str, str]], HttpResponse]] = {}
        self.calls: List[RecordedCall] = []

    def route(self, url: str, handler: Callable[[str, Dict[str, str]], HttpResponse]):
        self.routes[url] = handler

    def serve_file(
        self,
        url: str,
        content: bytes,
        supports_range: bool = True,
        chunk_size: int = 4,
        fail_after: Optional[int] = None,
        failures: int = 1,
    ):
        """
        Serve content, honoring Range headers when supports_range is set.

        The first `failures` GETs are cut off after fail_after bytes.
        """
        remaining_failures = [failures if fail_after is not None else 0]

        def handler(method: str, headers: Dict[str, str]) -> HttpResponse:
            match = _RANGE_PATTERN.match(headers.get("Range", ""))
            start = int(match.group(1)) if match and supports_range else 0
            body = content[start:]
            response_headers = {"content-length": str(len(body))}
            if start:
                response_headers["content-range"] = f"bytes {start}-{len(content) - 1}/{len(content)}"

            if method == "HEAD":
                return make_response(200 if not start else 206, headers=response_headers)

            cut_off = None
            if remaining_failures[0] > 0:
                remaining_failures[0] -= 1
                cut_off = fail_after
            return make_response(
                206 if start else 200, body, response_headers, chunk_size=chunk_size, fail_after=cut_off
            )

        self.route(url, handler)

    def redirect(self, url: str, location: Optional[str], status_code: int = 301):
        headers = {"location": location} if location else {}
        self.route(url, lambda method, request_headers: make_response(status_code, headers=headers))

    def status(self, url: str, status_code: int):
        self.route(url, lambda method, request_headers: make_response(status_code, b"error page"))

    def fail(self, url: str, error: Exception):
        def handler(method, request_headers):
            raise error

        self.route(url, handler)

    async def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return self._dispatch("HEAD", url, headers)

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return self._dispatch("GET", url, headers)

    def _dispatch(self, method: str, url: str, headers: Optional[Dict[str, str]]) -> HttpResponse:
        headers = dict(headers or {})
        self.calls.append(RecordedCall(method, url, headers))
        handler = self.routes.get(url)
        if handler is None:
            return make_response(404)
        return handler(method, headers)

    def requests(self, method: str) -> List[RecordedCall]:
        return [call for call in self.calls if call.method == method]
