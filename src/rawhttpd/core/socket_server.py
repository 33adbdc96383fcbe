"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket: bind, listen, accept. Every accepted client
socket is wrapped in a Connection and handed to a callback; the callback
decides how the connection is served (HTTPServer starts a thread).

Listening socket, step by step:

    1. socket()    Create the listening socket
    2. bind()      Reserve host:port          ← fails fast if taken
    3. listen()    Start queueing connections
    4. accept()    One new socket per client  ← loop
    5. close()     Release the port

    listener (0.0.0.0:4221)  ──accept()──►  Connection ──► callback
         never reads or writes                               │
                                                   one worker thread
                                                   per client

The accept loop only ever blocks in accept(). It never reads from a client.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Rebind right after a restart instead of waiting out
               TIME_WAIT ("Address already in use").
TCP_NODELAY    Send small responses immediately (no Nagle batching).

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, kill) flip the running flag.
The accept() call has a 1 second timeout, so the loop notices within a
second, closes the listening socket and returns. Signal handlers can only
be installed from the main thread; when the server runs in a background
thread (tests), they are skipped.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0
HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SocketServer:
    """
    TCP listener.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.bind()                     # raises OSError if the port is taken
        server.serve(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._previous_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). Reflects the real port when config.port is 0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up at least once a second to check _running
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def bind(self) -> None:
        """
        Create, bind and listen.

        Raises:
            OSError: The address cannot be bound (in use, permission denied).
        """
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Cannot bind {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"{signal.Signals(signum).name} received, stopping")
            self.shutdown()

        for signum in HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, on_signal)

    def _restore_signals(self):
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            signal.signal(signum, handler)

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown(). Binds first if bind() was not
        called.

        Args:
            connection_handler: Called once per accepted connection, on the
                accept thread. Must return quickly.
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._setup_signals()
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed: {e}")
                break

            logger.debug(f"New connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
                write_timeout=self.config.write_timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Stopping listener")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready_event.clear()
        logger.info("Listener closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running. True if it is."""
        return self._ready_event.wait(timeout)
