"""
=============================================================================
HTTP REQUEST READER
=============================================================================

Decodes one HTTP/1.1 request at a time from a buffered byte stream.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │    POST /files/notes.txt HTTP/1.1\r\n                          │ │
    │  │    ─┬── ────────┬─────── ────┬───                              │ │
    │  │   Method       Path       Version                              │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: localhost:4221\r\n                                    │ │
    │  │    Content-Length: 5\r\n                                       │ │
    │  │    \r\n                     ← empty line = end of headers       │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    hello                    ← pulled lazily, see body.py        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY LINE BY LINE?
=============================================================================

TCP is a byte stream. A request can arrive split over many recv() calls,
or share a recv() with the next request on a keep-alive connection. The
reader therefore pulls exactly one line at a time from a buffered source
and never looks past the blank line that ends the headers. Whatever follows
stays in the source's buffer for the body reader or the next request.

=============================================================================
PARSING RULES
=============================================================================

Request line:
    - split on single spaces
    - fewer than three tokens        → MalformedRequestLine (400)
    - path not starting with "/"     → MalformedRequestLine (400), but only
                                       for methods the server routes; any
                                       other method goes on to the router
                                       and gets 405 ("OPTIONS * HTTP/1.1")
    - line longer than the limit     → LineTooLong (400)
    - tokens after the third         → ignored

Header lines:
    - split on the FIRST colon, trim both sides, lowercase the name
    - no colon                       → logged and skipped
    - repeated name                  → last one wins

Bytes are decoded as UTF-8 with surrogateescape, so every byte the client
sent survives a decode/encode round trip. Echo bodies and filenames are
passed on byte for byte.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Collection, Dict, Optional

from .body import ByteSource, DEFAULT_CHUNK_SIZE, content_length, read_body
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


WIRE_ENCODING = "utf-8"
WIRE_ERRORS = "surrogateescape"


def decode_wire(data: bytes) -> str:
    """Decode request bytes so that encode_wire() gives the same bytes back."""
    return data.decode(WIRE_ENCODING, WIRE_ERRORS)


def encode_wire(text: str) -> bytes:
    """Inverse of decode_wire()."""
    return text.encode(WIRE_ENCODING, WIRE_ERRORS)


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the client should receive.
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequestLine(HTTPParseError):
    """The request line is not ``METHOD SP PATH SP VERSION``."""

    def __init__(self, line: str):
        super().__init__(f"Malformed request line: {line!r}", HTTPStatus.BAD_REQUEST)
        self.line = line


class LineTooLong(HTTPParseError):
    """A request or header line grew past the reader's line limit."""

    def __init__(self, limit: int):
        super().__init__(f"Line exceeds {limit} bytes", HTTPStatus.BAD_REQUEST)
        self.limit = limit


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method token as sent ("GET", "POST", ...)
        path:           Raw request target. Starts with "/" for every
                        method the server routes ("*" may reach the
                        router with other methods, which get 405).
                        Not URL-decoded, not normalized.
        version:        Version token ("HTTP/1.1")
        headers:        Header map with LOWERCASE keys
        client_address: (ip, port) of the peer, for logs

    The body is NOT read while parsing. Routing decisions never need it,
    and only the file upload handler does. The first access to ``body``
    pulls exactly Content-Length bytes from the source the request was
    read from, and caches them.

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    # Where the body still sits, unread
    _source: Optional[ByteSource] = field(default=None, repr=False, compare=False)
    _chunk_size: int = field(default=DEFAULT_CHUNK_SIZE, repr=False, compare=False)
    _body: Optional[bytes] = field(default=None, repr=False)

    @property
    def content_length(self) -> int:
        """Declared Content-Length, 0 if missing or invalid."""
        return content_length(self.headers)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def wants_close(self) -> bool:
        """
        True when the client asked for the connection to be closed.

        HTTP/1.1 connections are persistent by default; only an explicit
        ``Connection: close`` (any case) ends them.
        """
        return self.headers.get("connection", "").strip().lower() == "close"

    @property
    def body_consumed(self) -> bool:
        return self._body is not None

    @property
    def body(self) -> bytes:
        """
        Request body, read from the connection on first access.

        A request built without a source (tests, synthetic requests) has an
        empty body unless one was passed in explicitly.
        """
        if self._body is None:
            if self._source is None:
                self._body = b""
            else:
                self._body = read_body(self.headers, self._source, self._chunk_size)
        return self._body

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
    ) -> "HTTPRequest":
        """Create a request with an already-known body (no source)."""
        return cls(
            method=method,
            path=path,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            _body=body,
        )


class RequestReader:
    """
    Reads HTTPRequest objects off a buffered byte source.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    read_request() flow                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   readline() ──► b""?  ──────────────────────────► None (peer gone)  │
    │       │                                                              │
    │       ├──► blank?  ──► skip, read next line                          │
    │       ▼                                                              │
    │   split(" ") ──► < 3 tokens? ──► MalformedRequestLine                │
    │       │                                                              │
    │       ├──► routed method, path without "/"? ──► MalformedRequestLine  │
    │       │                                                              │
    │       ▼                                                              │
    │   readline() until blank ──► EOF? ──► ConnectionError                │
    │       │                                                              │
    │       ▼                                                              │
    │   HTTPRequest(method, path, version, headers, _source=source)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        body_chunk_size: int = DEFAULT_CHUNK_SIZE,
        methods: Optional[Collection[str]] = None,
    ):
        """
        Args:
            body_chunk_size: Largest single read while collecting a body.
            methods: Methods the server routes. A request target that does
                not start with "/" is only malformed for these; other
                methods are left for the router to reject with 405. None
                means every method.
        """
        self.body_chunk_size = body_chunk_size
        self.methods = frozenset(methods) if methods is not None else None

    def read_request(
        self,
        source: ByteSource,
        client_address: tuple[str, int] = ("", 0),
    ) -> Optional[HTTPRequest]:
        """
        Read the next request from ``source``.

        Returns:
            The parsed request, or None if the stream ended before a request
            line arrived.

        Raises:
            MalformedRequestLine: The request line has fewer than three
                tokens, or a routed method comes with a path that does not
                start with "/".
            LineTooLong: Propagated from the source.
            ConnectionError: The stream ended inside the header block.
            TimeoutError / OSError: Propagated from the source.
        """
        line = self._read_request_line(source)
        if line is None:
            return None

        method, path, version = self.parse_request_line(line)
        if not path.startswith("/") and self._routes(method):
            raise MalformedRequestLine(line)

        headers = self._read_headers(source)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            client_address=client_address,
            _source=source,
            _chunk_size=self.body_chunk_size,
        )

    def _read_request_line(self, source: ByteSource) -> Optional[str]:
        while True:
            raw = source.readline()
            if not raw:
                return None
            line = _strip_eol(raw)
            if line:
                return decode_wire(line)
            # Stray CRLF between requests

    def _routes(self, method: str) -> bool:
        return self.methods is None or method in self.methods

    @staticmethod
    def parse_request_line(line: str) -> tuple[str, str, str]:
        """
        Split ``METHOD SP PATH SP VERSION``.

        Example: "GET /echo/abc HTTP/1.1" → ("GET", "/echo/abc", "HTTP/1.1")
        """
        parts = line.split(" ")
        if len(parts) < 3:
            raise MalformedRequestLine(line)

        method, path, version = parts[0], parts[1], parts[2]
        if not method or not path:
            raise MalformedRequestLine(line)

        return method, path, version

    def _read_headers(self, source: ByteSource) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        while True:
            raw = source.readline()
            if not raw:
                raise ConnectionError("Stream ended inside header block")

            line = _strip_eol(raw)
            if not line:
                return headers

            name, value = self.parse_header_line(decode_wire(line))
            if name is None:
                logger.warning(f"Skipping header line without colon: {line!r}")
                continue
            headers[name] = value

    @staticmethod
    def parse_header_line(line: str) -> tuple[Optional[str], str]:
        """
        Split ``Name: value`` on the first colon.

        Returns (None, "") when the line has no colon.
        """
        name, sep, value = line.partition(":")
        if not sep:
            return None, ""
        return name.strip().lower(), value.strip()


def _strip_eol(raw: bytes) -> bytes:
    if raw.endswith(b"\r\n"):
        return raw[:-2]
    if raw.endswith(b"\n"):
        return raw[:-1]
    return raw
