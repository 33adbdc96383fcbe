"""
=============================================================================
REQUEST BODY READER
=============================================================================

Reads exactly Content-Length bytes of a request body from a buffered byte
source (in production, the client Connection).

    Content-Length: 11\r\n
    \r\n
    hello world            ← exactly 11 bytes, then the next request starts

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        read_body() flow                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   N = int(headers["content-length"])   (0 if absent / garbage)       │
    │                                                                      │
    │   N > 0:  while collected < N:                                       │
    │               chunk = source.read(min(chunk_size, N - collected))    │
    │               b"" or error? → stop, return what we have              │
    │                                                                      │
    │   N == 0: one read_available(chunk_size), never blocks               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A short body is final: there is no retry. Blocking is bounded by the
connection's read deadline, which surfaces here as TimeoutError.

Without Content-Length there is no way to know where the body ends short of
chunked transfer-encoding, which this server does not speak. The single
best-effort read picks up whatever the client already sent alongside the
headers.

=============================================================================
"""

import logging
from typing import Mapping, Protocol


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 1024


class ByteSource(Protocol):
    """What the body reader (and the request reader) need from a stream."""

    def readline(self) -> bytes:
        """Return one line including its terminator, or b"" at end of stream."""
        ...

    def read(self, size: int) -> bytes:
        """Return up to ``size`` bytes, blocking for at least one; b"" at EOF."""
        ...

    def read_available(self, size: int) -> bytes:
        """Return up to ``size`` bytes that can be had without blocking."""
        ...


def content_length(headers: Mapping[str, str]) -> int:
    """
    Declared body length from a lowercase header map.

    Missing, non-numeric and negative values all count as 0.
    """
    try:
        length = int(headers.get("content-length", "0").strip())
    except ValueError:
        return 0
    return max(length, 0)


def read_body(
    headers: Mapping[str, str],
    source: ByteSource,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> bytes:
    """
    Read the request body declared by ``headers`` from ``source``.

    Args:
        headers: Lowercase header map of the request.
        source: Buffered stream positioned right after the blank line.
        chunk_size: Largest single read.

    Returns:
        The body bytes. Shorter than Content-Length if the stream ended or
        failed first.
    """
    expected = content_length(headers)

    if expected == 0:
        try:
            return source.read_available(chunk_size)
        except OSError as e:
            logger.debug(f"Best-effort body read failed: {e}")
            return b""

    chunks = []
    received = 0
    while received < expected:
        try:
            chunk = source.read(min(chunk_size, expected - received))
        except OSError as e:
            # TimeoutError and ConnectionError are both OSError subclasses
            logger.warning(f"Body read stopped after {received}/{expected} bytes: {e}")
            break
        if not chunk:
            logger.warning(f"Stream ended after {received}/{expected} body bytes")
            break
        chunks.append(chunk)
        received += len(chunk)

    return b"".join(chunks)
