"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py       Lines → validated HTTPRequest (or an HTTPParseError)
    response.py      (virtual hosts, request, status) → HTTPResponse → bytes
    status_codes.py  200 / 400 / 404 and their reason phrases
    mime_types.py    File extension → Content-Type

=============================================================================
HTTP MESSAGE FORMAT (the subset we speak)
=============================================================================

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Host: website1\r\n                Content-Length: 5\r\n
    Connection: close\r\n             Content-Type: text/plain; ...\r\n
    \r\n                              \r\n
                                      hello

=============================================================================
"""

from .request import (
    HTTPRequest,
    HTTPParseError,
    MalformedStartLine,
    MalformedHeader,
    InvalidHeader,
    UnsupportedVersion,
    UnsupportedMethod,
    InvalidURL,
    MissingHost,
    read_request,
    canonical_header_key,
)
from .response import HTTPResponse, build_response, format_http_date
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "read_request",
    "canonical_header_key",

    # Parse errors (all answered with 400)
    "HTTPParseError",
    "MalformedStartLine",
    "MalformedHeader",
    "InvalidHeader",
    "UnsupportedVersion",
    "UnsupportedMethod",
    "InvalidURL",
    "MissingHost",

    # Responses
    "HTTPResponse",
    "build_response",
    "format_http_date",
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_content_type",
]
