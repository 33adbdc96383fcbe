"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All settings live in one immutable dataclass, built once at startup and
shared read-only by every connection thread. Nothing mutates it afterwards,
so no locking is needed.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line flag (directory only)                             │
    │      └── python -m rawhttpd --directory /tmp/data                  │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── RAWHTTPD_PORT=8080 python -m rawhttpd                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    FILES       directory
    NETWORK     host, port, backlog, buffer_size
    DEADLINES   read_timeout, write_timeout
    HTTP        body_chunk_size
    LOGGING     log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: str = "."
    """Directory served under /files/. Must exist at startup."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. All interfaces by default."""

    port: int = 4221
    """TCP port. 0 lets the OS pick one (tests)."""

    backlog: int = 128
    """Queued, not yet accepted connections before new ones are refused."""

    buffer_size: int = 4096
    """Bytes requested per recv()."""

    # ─────────────────────────────────────────────────────────────────────
    # DEADLINES
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: float = 10.0
    """
    Seconds a connection gets to deliver one complete request, counted from
    the moment the server starts waiting for it. Idle keep-alive
    connections are closed when it runs out.
    """

    write_timeout: float = 10.0
    """Seconds allowed for writing one response."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    body_chunk_size: int = 1024
    """Largest single read while collecting a request body."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING or ERROR."""

    @classmethod
    def from_env(cls, directory: str = ".") -> "ServerConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        RAWHTTPD_HOST           Bind address      (default: 0.0.0.0)
        RAWHTTPD_PORT           Port              (default: 4221)
        RAWHTTPD_READ_TIMEOUT   Seconds           (default: 10)
        RAWHTTPD_WRITE_TIMEOUT  Seconds           (default: 10)
        RAWHTTPD_LOG_LEVEL      Logging level     (default: INFO)

        =====================================================================

        Raises:
            ValueError: A numeric variable does not parse.
        """
        return cls(
            directory=directory,
            host=os.getenv("RAWHTTPD_HOST", "0.0.0.0"),
            port=int(os.getenv("RAWHTTPD_PORT", "4221")),
            read_timeout=float(os.getenv("RAWHTTPD_READ_TIMEOUT", "10")),
            write_timeout=float(os.getenv("RAWHTTPD_WRITE_TIMEOUT", "10")),
            log_level=os.getenv("RAWHTTPD_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """
        Fail fast on a bad configuration, at startup rather than on the
        first request.

        Raises:
            ValueError: With a message naming the offending setting.
        """
        path = Path(self.directory)
        if not path.exists():
            raise ValueError(f"Directory '{self.directory}' does not exist")
        if not path.is_dir():
            raise ValueError(f"'{self.directory}' is not a directory")

        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")

        if self.write_timeout <= 0:
            raise ValueError("write_timeout must be > 0")

        if self.buffer_size < 1 or self.body_chunk_size < 1:
            raise ValueError("buffer_size and body_chunk_size must be >= 1")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.log_level}")
