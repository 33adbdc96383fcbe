"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

Everything between raw bytes and handlers, with no sockets involved:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      bytes ──► HTTPRequest   (line-by-line reader)       │
    │ body.py         Content-Length bounded body reads                   │
    │ router.py       HTTPRequest ──► handler  (exact / prefix routes)    │
    │ response.py     HTTPResponse ──► bytes   (fixed header order)       │
    │ compression.py  Accept-Encoding negotiation, gzip                   │
    │ status_codes.py the six status lines the server sends               │
    └─────────────────────────────────────────────────────────────────────┘

Key points:
- Lines end with CRLF (\r\n)
- Headers and body are separated by an empty line
- Header names are case-insensitive (stored lowercase)
- Body length comes from Content-Length only

=============================================================================
"""

from .body import read_body, content_length
from .compression import accepts_gzip, gzip_encode
from .request import (
    HTTPRequest,
    RequestReader,
    HTTPParseError,
    MalformedRequestLine,
    LineTooLong,
)
from .response import (
    HTTPResponse,
    ok,             # 200 OK
    text,           # 200 OK, text/plain
    octet_stream,   # 200 OK, application/octet-stream
    created,        # 201 Created
    bad_request,    # 400 Bad Request
    not_found,      # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Router, Route, MatchKind
from .status_codes import HTTPStatus

__all__ = [
    # Request decoding
    "HTTPRequest",
    "RequestReader",
    "HTTPParseError",
    "MalformedRequestLine",
    "LineTooLong",
    "read_body",
    "content_length",

    # Response encoding
    "HTTPResponse",
    "ok",
    "text",
    "octet_stream",
    "created",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Content negotiation
    "accepts_gzip",
    "gzip_encode",

    # Routing
    "Router",
    "Route",
    "MatchKind",

    # Status codes
    "HTTPStatus",
]
