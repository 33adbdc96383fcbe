"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the pieces together and runs the per-connection request loop.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │RequestReader │    │    Router    │        │
    │    │  (accept)    │    │  (decode)    │    │  (dispatch)  │        │
    │    └──────┬───────┘    └──────────────┘    └──────┬───────┘        │
    │           ▼                                       ▼                 │
    │    ┌──────────────┐                        ┌──────────────┐        │
    │    │  Connection  │ ◄──── thread per ───── │   Handlers   │        │
    │    │ (TCP conn.)  │       connection       │ echo, files  │        │
    │    └──────────────┘                        └──────┬───────┘        │
    │                                                   ▼                 │
    │                                            ┌──────────────┐        │
    │                                            │  FileStore   │        │
    │                                            └──────────────┘        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts, HTTPServer starts a daemon thread
    2. Thread loops over requests on the connection:
         arm read deadline
         RequestReader decodes line + headers        (AWAITING_REQUEST)
         Connection: close?                          (HEADERS_PARSED)
         Router picks handler, handler runs          (DISPATCHED)
         unread body discarded
         response encoded and written                (RESPONSE_SENT)
    3. Close intent, timeout, EOF, I/O error or a malformed request line
       ends the loop; the socket is closed exactly once   (CLOSED)

=============================================================================
ERROR MAPPING
=============================================================================

    ┌──────────────────────────────────┬──────────────────────────────────┐
    │ Failure                          │ Outcome                          │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ read deadline, EOF, read error   │ close, no response               │
    │ unparseable request (bad request │ 400 + Connection: close, close   │
    │ line, line over 64 KiB)          │                                  │
    │ handler exception                │ 500, connection stays open       │
    │ write failure / write timeout    │ close                            │
    │ bind failure, bad directory      │ raised from run() / __init__     │
    └──────────────────────────────────┴──────────────────────────────────┘

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, FileStore, SocketServer
from .handlers import FileHandler, echo, root, user_agent
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPParseError,
    HTTPStatus,
    MatchKind,
    RequestReader,
    Router,
    internal_error,
)


logger = logging.getLogger(__name__)


def build_router(store: FileStore) -> Router:
    """
    The server's route table.

        GET   /              root
        GET   /echo/...      echo
        GET   /user-agent    user_agent
        GET   /files/...     FileHandler.get
        POST  /files/...     FileHandler.post
    """
    files = FileHandler(store)

    router = Router()
    router.add_route("GET", "/", root)
    router.add_route("GET", "/echo/", echo, kind=MatchKind.PREFIX)
    router.add_route("GET", "/user-agent", user_agent)
    router.add_route("GET", "/files/", files.get, kind=MatchKind.PREFIX)
    router.add_route("POST", "/files/", files.post, kind=MatchKind.PREFIX)
    return router


class HTTPServer:
    """
    HTTP/1.1 server over raw sockets.

    Usage:
        server = HTTPServer(ServerConfig(directory="/tmp/data"))
        server.run()   # blocks until SIGINT / SIGTERM / shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults serve the current
                directory on 0.0.0.0:4221.

        Raises:
            ValueError: The configuration is invalid (missing directory,
                bad port, ...).
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.store = FileStore(self.config.directory)
        self.router = build_router(self.store)

        self._socket_server = SocketServer(self.config)
        self._reader = RequestReader(
            body_chunk_size=self.config.body_chunk_size,
            methods=self.router.methods,
        )

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port)."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def run(self):
        """
        Bind and serve until shut down.

        Raises:
            OSError: The listening address cannot be bound.
        """
        self._setup_logging()
        self._socket_server.bind()
        logger.info(f"Serving files from directory: {self.store.root_dir}")

        try:
            self._socket_server.serve(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting new connections. Open connections finish on their own."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("rawhttpd").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Serve ``conn`` on its own thread.

        Called on the accept thread, so it only starts the worker and
        returns. There is no cap on concurrent connections.
        """
        worker = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        worker.start()

    def _process_connection(self, conn: Connection):
        """
        Request loop for one connection (runs in its worker thread).

        Requests are handled strictly one after another, so responses go
        out in the order the requests arrived.
        """
        with conn:  # closes the socket on every exit path
            while True:
                conn.state = ConnectionState.AWAITING_REQUEST
                conn.arm_read_deadline()

                # ─────────────────────────────────────────────────────────
                # READ REQUEST LINE + HEADERS
                # ─────────────────────────────────────────────────────────
                try:
                    request = self._reader.read_request(conn, conn.address)
                except HTTPParseError as e:
                    logger.warning(f"[{conn.id}] {e}")
                    response = HTTPResponse(HTTPStatus(e.status_code))
                    conn.send_response(response.to_bytes(close_connection=True))
                    break
                except TimeoutError:
                    logger.debug(f"[{conn.id}] Read deadline exceeded, closing")
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Read failed: {e}")
                    break

                if request is None:
                    logger.debug(f"[{conn.id}] Client closed the connection")
                    break

                conn.state = ConnectionState.HEADERS_PARSED
                close_connection = request.wants_close
                if close_connection:
                    logger.debug(f"[{conn.id}] Client requested connection close")

                # ─────────────────────────────────────────────────────────
                # DISPATCH
                # ─────────────────────────────────────────────────────────
                conn.state = ConnectionState.DISPATCHED
                response = self._dispatch(conn, request)

                if not self._skip_unread_body(conn, request):
                    close_connection = True

                # ─────────────────────────────────────────────────────────
                # WRITE RESPONSE
                # ─────────────────────────────────────────────────────────
                if not conn.send_response(response.to_bytes(close_connection)):
                    break

                conn.requests_handled += 1
                conn.state = ConnectionState.RESPONSE_SENT
                logger.info(
                    f"[{conn.id}] {request.method} {request.path} -> {response.status}"
                )

                if close_connection:
                    break

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        """Run the handler; an exception becomes a 500, never a dead thread."""
        try:
            return self.router.handle(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()

    def _skip_unread_body(self, conn: Connection, request: HTTPRequest) -> bool:
        """
        Discard a declared body the handler did not read, so the next
        request line starts at the right byte.

        Returns:
            False if the body could not be skipped; the connection cannot
            be reused.
        """
        pending = request.content_length
        if request.body_consumed or pending == 0:
            return True

        try:
            skipped = conn.discard(pending)
        except OSError as e:
            logger.debug(f"[{conn.id}] Failed to skip request body: {e}")
            return False
        return skipped == pending
