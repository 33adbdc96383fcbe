"""
=============================================================================
RAWHTTPD CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 0.0.0.0:4221
    python -m rawhttpd

    # Serve another directory
    python -m rawhttpd --directory /tmp/data

--directory is the only flag. Network and logging settings come from the
environment (see ServerConfig.from_env):

    RAWHTTPD_PORT=8080 RAWHTTPD_LOG_LEVEL=DEBUG python -m rawhttpd

Exit status is 1 when the directory does not exist or is not a directory,
or when the port cannot be bound.

=============================================================================
"""

import argparse
import sys

from .config import ServerConfig
from .server import HTTPServer


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="rawhttpd",
        description="Minimal HTTP/1.1 server over raw sockets",
    )
    parser.add_argument(
        "--directory",
        default=".",
        help="Directory to serve files from (default: current directory)",
    )
    args = parser.parse_args(argv)

    try:
        config = ServerConfig.from_env(directory=args.directory)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except OSError as e:
        print(f"Error: failed to bind to {config.host}:{config.port}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
