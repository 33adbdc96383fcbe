"""
=============================================================================
FILE HANDLERS
=============================================================================

Read and write files in the served directory.

    GET  /files/<name>   → 200 application/octet-stream, file bytes
    POST /files/<name>   → 201 Created, request body stored as <name>

=============================================================================
STATUS MAPPING
=============================================================================

    ┌──────────────────────────────┬────────────┬────────────┐
    │ Condition                    │ GET        │ POST       │
    ├──────────────────────────────┼────────────┼────────────┤
    │ empty name                   │ 404        │ 400        │
    │ unsafe name ("..", absolute) │ 404        │ 400        │
    │ file missing                 │ 404        │ (created)  │
    │ other I/O error              │ 500        │ 500        │
    │ success                      │ 200        │ 201        │
    └──────────────────────────────┴────────────┴────────────┘

The upload body is pulled from the connection only here, through
``request.body``: exactly Content-Length bytes, or one best-effort read
when the header is missing.

=============================================================================
"""

import logging

from ..core.file_store import FileStore, InvalidFileName
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    bad_request,
    created,
    internal_error,
    not_found,
    octet_stream,
)


logger = logging.getLogger(__name__)


FILES_PREFIX = "/files/"


class FileHandler:
    """
    GET/POST handlers bound to one FileStore.

    Usage:
        files = FileHandler(FileStore(config.directory))
        router.add_route("GET", "/files/", files.get, kind=MatchKind.PREFIX)
        router.add_route("POST", "/files/", files.post, kind=MatchKind.PREFIX)
    """

    def __init__(self, store: FileStore):
        self.store = store

    @staticmethod
    def filename(request: HTTPRequest) -> str:
        """Path remainder after ``/files/``; empty if the prefix is missing."""
        if not request.path.startswith(FILES_PREFIX):
            return ""
        return request.path[len(FILES_PREFIX):]

    def get(self, request: HTTPRequest) -> HTTPResponse:
        name = self.filename(request)
        if not name:
            return not_found()

        try:
            content = self.store.read_all(name)
        except InvalidFileName as e:
            logger.warning(f"Rejected filename: {e}")
            return not_found()
        except FileNotFoundError:
            return not_found()
        except OSError as e:
            logger.error(f"Error reading file {name!r}: {e}")
            return internal_error()

        return octet_stream(content)

    def post(self, request: HTTPRequest) -> HTTPResponse:
        name = self.filename(request)
        if not name:
            return bad_request()

        try:
            self.store.resolve(name)
        except InvalidFileName as e:
            logger.warning(f"Rejected filename: {e}")
            return bad_request()

        body = request.body
        try:
            self.store.write_all(name, body)
        except OSError as e:
            logger.error(f"Error writing file {name!r}: {e}")
            return internal_error()

        return created()
