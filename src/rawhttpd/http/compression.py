"""
=============================================================================
GZIP CONTENT NEGOTIATION
=============================================================================

The client advertises what it can decode in Accept-Encoding:

    Accept-Encoding: deflate, gzip, br
                              ────
                              one of the comma-separated tokens

The server compresses a response only if one of those tokens, after
trimming surrounding whitespace, is exactly ``gzip``. Quality values are
not interpreted, so ``gzip;q=0.5`` is not a match, and neither is
``x-gzip`` or ``GZIP``.

    ┌────────────────────────────────────────────────────────────────────┐
    │   Accept-Encoding            │ Compress?                            │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │   gzip                       │ yes                                  │
    │   deflate, gzip              │ yes                                  │
    │   invalid-1, gzip, invalid-2 │ yes                                  │
    │   invalid-encoding           │ no                                   │
    │   (missing)                  │ no                                   │
    └──────────────────────────────┴──────────────────────────────────────┘

When gzip is applied, Content-Length is the COMPRESSED size. The response
encoder always derives Content-Length from the final body bytes, so this
holds automatically.

=============================================================================
"""

import gzip


GZIP = "gzip"


def accepted_encodings(header_value: str) -> list[str]:
    """Split an Accept-Encoding value into trimmed, non-empty tokens."""
    return [token.strip() for token in header_value.split(",") if token.strip()]


def accepts_gzip(header_value: str) -> bool:
    """True if ``gzip`` is one of the advertised encodings."""
    return GZIP in accepted_encodings(header_value)


def gzip_encode(data: bytes, level: int = 9) -> bytes:
    """
    Compress ``data`` into a standard gzip member.

    Raises:
        zlib.error / OSError: Compression failed. Callers turn this into a
            500 response.
    """
    return gzip.compress(data, compresslevel=level)
