"""
Text handlers: root, echo and User-Agent reflection.

    GET /                 → 200, empty body
    GET /echo/<message>   → 200, text/plain, body = <message> (gzip if asked)
    GET /user-agent       → 200, text/plain, body = User-Agent header

The echo message is the raw path remainder. It is not URL-decoded, so
``/echo/a%20b`` answers ``a%20b``.
"""

import logging
import zlib

from ..http.compression import accepts_gzip, gzip_encode
from ..http.request import HTTPRequest, encode_wire
from ..http.response import HTTPResponse, bad_request, internal_error, ok, text


logger = logging.getLogger(__name__)


ECHO_PREFIX = "/echo/"


def root(request: HTTPRequest) -> HTTPResponse:
    return ok()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Reflect the path remainder after ``/echo/``.

    With ``gzip`` among the Accept-Encoding tokens the body is compressed
    and ``Content-Encoding: gzip`` is set. Content-Length is then the
    compressed size.
    """
    if not request.path.startswith(ECHO_PREFIX):
        return bad_request()

    message = encode_wire(request.path[len(ECHO_PREFIX):])
    response = text(message)

    if accepts_gzip(request.get_header("accept-encoding")):
        try:
            response.body = gzip_encode(message)
        except (zlib.error, OSError) as e:
            logger.error(f"gzip compression failed: {e}")
            return internal_error()
        response.set_header("Content-Encoding", "gzip")

    return response


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """Reflect the User-Agent header; empty body when it is absent."""
    return text(encode_wire(request.user_agent))
