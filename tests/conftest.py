"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rawhttpd import HTTPServer, ServerConfig
from rawhttpd.core import Connection


class ChunkedSource:
    """
    In-memory byte source that hands data out in fixed chunks, the way
    recv() would. Implements readline / read / read_available.
    """

    def __init__(self, *chunks: bytes):
        self._chunks: List[bytes] = [c for c in chunks if c]
        self._buffer = b""
        self.recv_calls = 0

    def _fill(self) -> bool:
        if not self._chunks:
            return False
        self.recv_calls += 1
        self._buffer += self._chunks.pop(0)
        return True

    def readline(self) -> bytes:
        while b"\n" not in self._buffer:
            if not self._fill():
                line, self._buffer = self._buffer, b""
                return line
        index = self._buffer.index(b"\n") + 1
        line, self._buffer = self._buffer[:index], self._buffer[index:]
        return line

    def read(self, size: int) -> bytes:
        if not self._buffer:
            self._fill()
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def read_available(self, size: int) -> bytes:
        # Only what has already "arrived"; never pulls the next chunk
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    @property
    def remaining(self) -> bytes:
        return self._buffer + b"".join(self._chunks)


class FailingSource(ChunkedSource):
    """Delivers its chunks, then raises instead of signalling EOF."""

    def __init__(self, *chunks: bytes, error: Exception = TimeoutError("deadline")):
        super().__init__(*chunks)
        self.error = error

    def _fill(self) -> bool:
        if not self._chunks:
            raise self.error
        return super()._fill()


@pytest.fixture
def make_source() -> Callable[..., ChunkedSource]:
    """Factory: make_source(b"GET / HTTP/1.1\\r\\n", b"\\r\\n")."""
    return ChunkedSource


@pytest.fixture
def make_failing_source() -> Callable[..., FailingSource]:
    return FailingSource


@pytest.fixture
def serve_dir(tmp_path: Path) -> Path:
    """Empty directory to serve files from."""
    directory = tmp_path / "files"
    directory.mkdir()
    return directory


@pytest.fixture
def connection_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """A server-side Connection and the client socket talking to it."""
    server_sock, client_sock = socket.socketpair()
    conn = Connection(
        socket=server_sock,
        address=("127.0.0.1", 0),
        read_timeout=1.0,
        write_timeout=1.0,
    )
    yield conn, client_sock
    conn.close()
    client_sock.close()


# =============================================================================
# LIVE SERVER
# =============================================================================

class RunningServer:
    """HTTPServer running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


class HTTPTestClient:
    """Raw-socket client that reads responses by Content-Length."""

    def __init__(self, port: int, timeout: float = 5.0):
        self.sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self._buffer = b""

    def send(self, data: bytes) -> None:
        self.sock.sendall(data)

    def request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
    ) -> None:
        lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        if body:
            lines.append(f"Content-Length: {len(body)}")
        self.send(("\r\n".join(lines) + "\r\n\r\n").encode() + body)

    def _recv_more(self) -> bool:
        chunk = self.sock.recv(65536)
        if not chunk:
            return False
        self._buffer += chunk
        return True

    def read_response(self) -> Tuple[str, Dict[str, str], bytes]:
        """
        Returns:
            (status line, headers with lowercase names, body)
        """
        while b"\r\n\r\n" not in self._buffer:
            if not self._recv_more():
                raise ConnectionError("Connection closed before response headers")

        head, self._buffer = self._buffer.split(b"\r\n\r\n", 1)
        lines = head.decode("latin-1").split("\r\n")
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(":")
            headers[name.strip().lower()] = value.strip()

        length = int(headers.get("content-length", "0"))
        while len(self._buffer) < length:
            if not self._recv_more():
                raise ConnectionError("Connection closed inside response body")

        body, self._buffer = self._buffer[:length], self._buffer[length:]
        return lines[0], headers, body

    def raw_head(self) -> bytes:
        """Status line and headers of the next response, exactly as sent."""
        while b"\r\n\r\n" not in self._buffer:
            if not self._recv_more():
                raise ConnectionError("Connection closed before response headers")
        index = self._buffer.index(b"\r\n\r\n") + 4
        return self._buffer[:index]

    def is_closed_by_server(self) -> bool:
        """True if the server has closed its side (recv returns EOF)."""
        try:
            return not self._buffer and self.sock.recv(1) == b""
        except ConnectionResetError:
            return True

    def close(self) -> None:
        self.sock.close()


@pytest.fixture
def running_server(serve_dir: Path) -> Generator[RunningServer, None, None]:
    """Server on a free port serving ``serve_dir``, with a 1 s read deadline."""
    server = HTTPServer(ServerConfig(
        directory=str(serve_dir),
        host="127.0.0.1",
        port=0,
        read_timeout=1.0,
        write_timeout=1.0,
        log_level="WARNING",
    ))
    running = RunningServer(server)
    running.start()

    yield running

    running.stop()


@pytest.fixture
def client(running_server: RunningServer) -> Generator[Callable[[], HTTPTestClient], None, None]:
    """Factory for clients connected to ``running_server``."""
    clients = []

    def connect() -> HTTPTestClient:
        c = HTTPTestClient(running_server.port)
        clients.append(c)
        return c

    yield connect

    for c in clients:
        c.close()
