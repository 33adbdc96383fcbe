"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SocketServer   listening socket, accept loop, signals               │
    │      │                                                               │
    │      │ one Connection per accepted client                            │
    │      ▼                                                               │
    │ Connection     buffered reads, read deadline, write timeout,         │
    │                close exactly once                                    │
    │                                                                      │
    │ FileStore      the served directory as a byte store                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .file_store import FileStore, InvalidFileName

__all__ = [
    "SocketServer",     # TCP listener - accepts connections
    "Connection",       # Client socket wrapper - buffered I/O, deadlines
    "ConnectionState",  # Connection lifecycle states
    "FileStore",        # Served directory
    "InvalidFileName",  # Unsafe filename from the URL
]
