"""
=============================================================================
HTTP RESPONSE ENCODER
=============================================================================

Serializes responses byte-for-byte in HTTP/1.1 wire format.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                  ← status line               │
    │    Content-Type: text/plain\r\n         ← only if set               │
    │    Content-Length: 3\r\n                ← ALWAYS, len(body)         │
    │    Content-Encoding: gzip\r\n           ← only if set               │
    │    Connection: close\r\n                ← only when closing         │
    │    \r\n                                 ← end of headers            │
    │    abc                                  ← raw body bytes            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FRAMING RULES
=============================================================================

1. Content-Length is computed from the body at serialization time. Whatever
   a handler put in the header map under that name is ignored, so the value
   can never disagree with the bytes actually sent (gzip included).

2. Headers come out in a fixed order (HEADER_ORDER), then any others in
   insertion order. Tests and clients see the same bytes every time.

3. The body is appended as opaque bytes. Nothing is re-encoded, so a gzip
   stream goes out exactly as produced.

4. Even empty responses (404, 201, ...) carry ``Content-Length: 0``. On a
   keep-alive connection the client needs it to know the response is over.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Union

from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"

HEADER_ORDER = ("Content-Type", "Content-Length", "Content-Encoding", "Connection")


@dataclass
class HTTPResponse:
    """
    A response ready to be serialized.

        Handler returns          to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = HTTP_VERSION

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {self.status} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body; strings are encoded as UTF-8."""
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def header_lines(self, close_connection: bool = False) -> list[str]:
        """
        Header lines in emission order, without CRLF.

        Args:
            close_connection: Add ``Connection: close``.
        """
        headers = dict(self.headers)
        headers["Content-Length"] = str(len(self.body))
        if close_connection:
            headers["Connection"] = "close"

        lines = [f"{name}: {headers.pop(name)}" for name in HEADER_ORDER if name in headers]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        return lines

    def to_bytes(self, close_connection: bool = False) -> bytes:
        """
        Serialize for ``socket.sendall()``.

        Args:
            close_connection: The connection closes after this response;
                emit ``Connection: close``.
        """
        head = "\r\n".join([self.status_line, *self.header_lines(close_connection)])
        return head.encode("latin-1") + b"\r\n\r\n" + self.body


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def ok(body: bytes = b"", content_type: str = "") -> HTTPResponse:
    """200 OK, optionally with a typed body."""
    response = HTTPResponse(HTTPStatus.OK, body=body)
    if content_type:
        response.set_header("Content-Type", content_type)
    return response


def text(body: bytes) -> HTTPResponse:
    """200 OK with ``Content-Type: text/plain``."""
    return ok(body, "text/plain")


def octet_stream(body: bytes) -> HTTPResponse:
    """200 OK with ``Content-Type: application/octet-stream``."""
    return ok(body, "application/octet-stream")


def created() -> HTTPResponse:
    """201 Created, empty body."""
    return HTTPResponse(HTTPStatus.CREATED)


def bad_request() -> HTTPResponse:
    return HTTPResponse(HTTPStatus.BAD_REQUEST)


def not_found() -> HTTPResponse:
    return HTTPResponse(HTTPStatus.NOT_FOUND)


def method_not_allowed() -> HTTPResponse:
    return HTTPResponse(HTTPStatus.METHOD_NOT_ALLOWED)


def internal_error() -> HTTPResponse:
    """
    500 Internal Server Error.

    Empty body: internal details (paths, errno) stay in the server log.
    """
    return HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR)
