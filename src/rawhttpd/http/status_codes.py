"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever answers with six status lines:

    ┌───────┬──────────────────────────┬─────────────────────────────────────┐
    │ Code  │ Reason phrase            │ Sent when                           │
    ├───────┼──────────────────────────┼─────────────────────────────────────┤
    │  200  │ OK                       │ root, echo, user-agent, file GET    │
    │  201  │ Created                  │ file POST stored                    │
    │  400  │ Bad Request              │ malformed request line, bad name    │
    │  404  │ Not Found                │ unknown path, missing file          │
    │  405  │ Method Not Allowed       │ anything other than GET / POST      │
    │  500  │ Internal Server Error    │ file I/O or gzip failure            │
    └───────┴──────────────────────────┴─────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes used by the server.

    IntEnum so a status compares and formats like a plain integer:

        >>> HTTPStatus.OK == 200
        True
        >>> f"{HTTPStatus.NOT_FOUND}"
        '404'
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                        # Request handled
    CREATED = 201                   # File written
    BAD_REQUEST = 400               # Malformed request syntax
    NOT_FOUND = 404                 # Unknown route or missing file
    METHOD_NOT_ALLOWED = 405        # Method other than GET / POST
    INTERNAL_SERVER_ERROR = 500     # Unexpected server-side failure

    def __str__(self) -> str:
        return str(self.value)

    def __format__(self, format_spec: str) -> str:
        return format(self.value, format_spec)

    @property
    def phrase(self) -> str:
        """
        Reason phrase that follows the code on the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
