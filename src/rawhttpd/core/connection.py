"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered reads, read/write deadlines
and a close-exactly-once guarantee.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. Bytes arrive in order and
intact, but in whatever chunks the network and kernel produce:

    Client sends:
        send("GET /echo/abc HTTP/1.1\r\n\r\n")
        send("GET /user-agent HTTP/1.1\r\n\r\n")

    Server might receive:
        recv() → "GET /echo/a"                         (partial)
        recv() → "bc HTTP/1.1\r\n\r\nGET /user-age"    (end of 1st + part of 2nd)
        recv() → "nt HTTP/1.1\r\n\r\n"                 (rest)

So the Connection keeps a byte buffer. readline() and read() serve from the
buffer first and only call recv() when it runs dry. Whatever is left over
after one request (the start of the next one) stays buffered for the next
iteration of the keep-alive loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection read API                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   readline()            up to and including b"\n"                    │
    │                         (everything left, at end of stream)          │
    │                                                                      │
    │   read(n)               1..n bytes, blocks for at least one          │
    │                         b"" at end of stream                         │
    │                                                                      │
    │   read_available(n)     0..n bytes, NEVER blocks                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DEADLINES
=============================================================================

A socket timeout applies to ONE recv() call. A client trickling one byte
every 9 seconds would keep a 10-second timeout happy forever. The read
side therefore uses an absolute deadline, armed once per request:

    arm_read_deadline()          deadline = now + read_timeout
         │
         ├── recv()   settimeout(deadline - now)
         ├── recv()   settimeout(deadline - now)      ← shrinking budget
         └── recv()   deadline passed → TimeoutError

The whole request (line, headers, body) must arrive before the deadline.
Writes get a plain per-call timeout around sendall().

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    AWAITING_REQUEST ──► HEADERS_PARSED ──► DISPATCHED ──► RESPONSE_SENT
          ▲                                                     │
          │                      keep-alive                     │
          └─────────────────────────────────────────────────────┤
                                                                │ close intent
          timeout / EOF / I/O error / request parse error       ▼
          ─────────────────────────────────────────────────► CLOSED

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import LineTooLong


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    AWAITING_REQUEST = "awaiting_request"   # Waiting for / reading a request
    HEADERS_PARSED = "headers_parsed"       # Request line + headers decoded
    DISPATCHED = "dispatched"               # Handler is running
    RESPONSE_SENT = "response_sent"         # Response written
    CLOSED = "closed"                       # Socket released


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current ConnectionState.
        requests_handled: Responses written on this connection.
        buffer_size: Bytes requested per recv().
        read_timeout: Budget for reading one whole request, in seconds.
        write_timeout: Budget for writing one response, in seconds.
        max_line_size: Longest request or header line accepted.
    """

    DRAIN_TIMEOUT = 0.5

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 4096
    read_timeout: float = 10.0
    write_timeout: float = 10.0
    max_line_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _read_deadline: Optional[float] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def buffered(self) -> int:
        """Bytes received but not yet consumed."""
        return len(self._buffer)

    # =========================================================================
    # DEADLINES
    # =========================================================================

    def arm_read_deadline(self) -> None:
        """Start the read budget for the next request."""
        self._read_deadline = time.monotonic() + self.read_timeout

    def _remaining_read_time(self) -> float:
        if self._read_deadline is None:
            return self.read_timeout
        remaining = self._read_deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("Read deadline exceeded")
        return remaining

    # =========================================================================
    # READING
    # =========================================================================

    def _recv(self) -> bytes:
        """
        One recv() bounded by the read deadline.

        Returns:
            Received bytes, or b"" if the peer closed or reset the connection.

        Raises:
            TimeoutError: The read deadline passed.
        """
        self.socket.settimeout(self._remaining_read_time())
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError("Read deadline exceeded") from None
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    def readline(self) -> bytes:
        """
        Next line including its ``\\n``.

        At end of stream, returns whatever is left (possibly b"").

        Raises:
            TimeoutError: The read deadline passed.
            LineTooLong: The line grew past ``max_line_size``.
        """
        while True:
            newline = self._buffer.find(b"\n")
            if newline != -1:
                line, self._buffer = self._buffer[:newline + 1], self._buffer[newline + 1:]
                return line

            if len(self._buffer) > self.max_line_size:
                raise LineTooLong(self.max_line_size)

            chunk = self._recv()
            if not chunk:
                line, self._buffer = self._buffer, b""
                return line
            self._buffer += chunk

    def read(self, size: int) -> bytes:
        """
        Up to ``size`` bytes; blocks until at least one is available.

        Returns b"" at end of stream.
        """
        if not self._buffer:
            self._buffer = self._recv()
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def read_available(self, size: int) -> bytes:
        """Up to ``size`` bytes that are already here; never blocks."""
        if not self._buffer:
            self.socket.setblocking(False)
            try:
                self._buffer = self.socket.recv(self.buffer_size)
            except (BlockingIOError, InterruptedError):
                return b""
            except (ConnectionResetError, BrokenPipeError):
                return b""
            finally:
                self.socket.setblocking(True)
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def discard(self, size: int) -> int:
        """
        Skip ``size`` bytes of unread body.

        Returns:
            Bytes actually skipped (fewer if the stream ended).
        """
        skipped = 0
        while skipped < size:
            chunk = self.read(min(self.buffer_size, size - skipped))
            if not chunk:
                break
            skipped += len(chunk)
        return skipped

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write a whole response within ``write_timeout``.

        sendall() keeps calling send() until every byte is out; send() alone
        may write only part of the buffer.

        Returns:
            True if sent, False if the connection failed or timed out.
        """
        self.socket.settimeout(self.write_timeout)
        try:
            self.socket.sendall(data)
            return True
        except socket.timeout:
            logger.warning(f"[{self.id}] Write deadline exceeded")
            return False
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once; only the first
        call touches the socket.

        TCP close sequence:

            Server                              Client
               │   FIN ──────────────────────►    │   shutdown(SHUT_WR)
               │   ◄────────────────────  ACK    │
               │   ◄────────────────────  FIN    │   client closes
               │   ACK ──────────────────────►    │
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        # Unread input at close() makes the kernel send RST, which can
        # destroy the response still sitting in the client's buffer.
        drain_until = time.monotonic() + self.DRAIN_TIMEOUT
        try:
            while time.monotonic() < drain_until:
                self.socket.settimeout(max(drain_until - time.monotonic(), 0.01))
                if not self.socket.recv(self.buffer_size):
                    break
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        age = time.time() - self.created_at
        logger.debug(
            f"[{self.id}] Connection closed after {self.requests_handled} requests, {age:.2f}s"
        )

    def __enter__(self):
        """
        Context manager entry:

            with conn:
                ...
            # closed here, whatever happened inside
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
