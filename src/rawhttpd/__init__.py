"""
=============================================================================
RAWHTTPD - A Minimal HTTP/1.1 Server Over Raw Sockets
=============================================================================

Accepts TCP connections and speaks just enough HTTP/1.1 to serve a handful
of endpoints, parsing and framing every byte itself.

    GET  /                 200, empty body
    GET  /echo/<msg>       <msg> as text/plain (gzip if Accept-Encoding asks)
    GET  /user-agent       the User-Agent header
    GET  /files/<name>     contents of <directory>/<name>
    POST /files/<name>     store the request body as <directory>/<name>

Connections are persistent: a client may send any number of requests on one
connection, one after another, until it sends ``Connection: close``, goes
quiet for longer than the read deadline, or disconnects.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    rawhttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m rawhttpd)
    ├── server.py            # HTTPServer, connection loop, route table
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listening socket, accept loop
    │   ├── connection.py    # Buffered client connection with deadlines
    │   └── file_store.py    # Served directory
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request line + header decoding
    │   ├── body.py          # Content-Length bounded body reads
    │   ├── response.py      # Response encoding
    │   ├── router.py        # Exact / prefix routing
    │   ├── compression.py   # gzip negotiation
    │   └── status_codes.py  # HTTP status enum
    └── handlers/            # Request handlers
        ├── echo.py          # /, /echo/, /user-agent
        └── files.py         # /files/ GET and POST

=============================================================================
QUICK START
=============================================================================

    $ python -m rawhttpd --directory /tmp/data
    $ curl -i http://localhost:4221/echo/hello

    from rawhttpd import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(directory="/tmp/data", port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, build_router
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "build_router", "__version__"]
