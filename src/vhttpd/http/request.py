"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Builds a validated HTTPRequest from a stream of CRLF-terminated lines.

=============================================================================
WHAT WE ACCEPT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /images/kitten.jpg HTTP/1.1\r\n    ← exactly 3 tokens          │
    │  ─┬─ ─────────┬──────── ────┬───                                    │
    │   │           │             │                                        │
    │  only GET   must start    only HTTP/1.1                              │
    │             with "/"                                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │  Host: website1\r\n                     ← required                  │
    │  Connection: close\r\n                  ← optional                  │
    │  User-Agent: curl/8.0\r\n               ← anything else is stored   │
    │  \r\n                                   ← end of request            │
    └─────────────────────────────────────────────────────────────────────┘

There is no body: GET requests end at the empty line.

=============================================================================
HEADER RULES
=============================================================================

    Key:    one or more letters, digits or "-". Case-insensitive.
            Stored canonicalized: "content-type" → "Content-Type".
            " Host" (leading space) is NOT a valid key.

    Value:  everything after the first colon, leading whitespace trimmed.
            May be empty. Case-sensitive ("Connection: ClOSe" is not
            "close").

=============================================================================
ERRORS
=============================================================================

    HTTPParseError (400)
    ├── MalformedStartLine    "GET /" or "GET  / HTTP/1.1"
    ├── MalformedHeader       "Host website1"          (no colon)
    ├── InvalidHeader         "User-%Agent: x"         (bad key)
    ├── UnsupportedVersion    "GET / HTTP/2.0"
    ├── UnsupportedMethod     "PATCH / HTTP/1.1"
    ├── InvalidURL            "GET index.html HTTP/1.1"
    └── MissingHost           no Host header, or an empty one

Every error carries bytes_read so the connection handler can tell a
client that sent nothing from one that sent half a request.

=============================================================================
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Protocol, Tuple

from ..core.line_reader import LineReadError


SUPPORTED_METHOD = "GET"
SUPPORTED_VERSION = "HTTP/1.1"
INDEX_FILE = "index.html"


class LineSource(Protocol):
    """Anything that can hand out (line, consumed) pairs, like LineReader."""

    def read_line(self) -> Tuple[str, int]:
        ...


class HTTPParseError(Exception):
    """
    Raised when a request cannot be accepted.

    Every parse failure is answered with 400 Bad Request, so status_code
    is fixed. bytes_read is filled in by read_request().
    """

    status_code = 400

    def __init__(self, message: str, bytes_read: int = 0):
        super().__init__(message)
        self.bytes_read = bytes_read


class MalformedStartLine(HTTPParseError):
    """Request line is not exactly METHOD SP URL SP VERSION."""


class MalformedHeader(HTTPParseError):
    """Header line has no colon."""


class InvalidHeader(HTTPParseError):
    """Header key or value has forbidden characters."""


class UnsupportedVersion(HTTPParseError):
    """Protocol is not HTTP/1.1."""


class UnsupportedMethod(HTTPParseError):
    """Method is not GET."""


class InvalidURL(HTTPParseError):
    """URL does not start with a slash."""


class MissingHost(HTTPParseError):
    """No Host header (or an empty one)."""


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed and validated request.

    Frozen: once read_request() returns it, nothing changes it. headers is
    a read-only view, so that holds for the header map too.

    Attributes:
        method:   Always "GET" for a validated request.
        url:      Starts with "/". "/docs/" has become "/docs/index.html".
        protocol: Always "HTTP/1.1" for a validated request.
        headers:  Canonical header name → value (last occurrence wins).
        host:     Value of the Host header.
        close:    True when the client sent "Connection: close".
    """

    method: str
    url: str
    protocol: str
    headers: Mapping[str, str] = field(default_factory=dict)
    host: str = ""
    close: bool = False

    def __post_init__(self):
        # read-only view over a private copy
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(canonical_header_key(name), default)


# =============================================================================
# HEADER HELPERS
# =============================================================================

def _is_key_char(c: str) -> bool:
    return c.isalnum() or c == "-"


def canonical_header_key(key: str) -> str:
    """
    Canonicalize a header key.

    The first letter and every letter after a hyphen are upper-cased, the
    rest lower-cased:

        >>> canonical_header_key("content-type")
        'Content-Type'
        >>> canonical_header_key("HOST")
        'Host'

    A key with characters other than letters, digits and hyphens is
    returned unchanged so validation can still reject it as written.
    """
    if not key or not all(_is_key_char(c) for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def is_valid_header(key: str, value: str) -> bool:
    """Key is non-empty letters/digits/hyphens; value has no CRLF."""
    if not key:
        return False
    if not all(_is_key_char(c) for c in key):
        return False
    return "\r\n" not in value


def parse_header_line(line: str) -> Tuple[str, str]:
    """
    Split "Key: value" into (canonical key, value).

    Raises:
        MalformedHeader: The line has no colon.
    """
    key, sep, value = line.partition(":")
    if not sep:
        raise MalformedHeader(f"Header missing colon: {line!r}")
    return canonical_header_key(key), value.lstrip()


# =============================================================================
# PARSER
# =============================================================================

def read_request(reader: LineSource) -> HTTPRequest:
    """
    Read and validate exactly one request from reader.

    =====================================================================
    ORDER OF CHECKS
    =====================================================================

    1. Request line shape (3 tokens)        → MalformedStartLine
    2. Every header line as it arrives      → MalformedHeader / InvalidHeader
    3. After the empty line:
         version == HTTP/1.1                → UnsupportedVersion
         method == GET                      → UnsupportedMethod
         url starts with "/"                → InvalidURL
         url ends with "/" → + "index.html"
         Host present and non-empty         → MissingHost

    =====================================================================

    Args:
        reader: Line source, normally the connection's LineReader.

    Returns:
        The validated request.

    Raises:
        HTTPParseError: Subclass naming the problem, with bytes_read set.
        LineReadError: ReadTimeout / UnexpectedEOF, with bytes_read set.
    """
    bytes_read = 0

    def next_line() -> str:
        nonlocal bytes_read
        try:
            line, consumed = reader.read_line()
        except LineReadError as e:
            e.bytes_read = bytes_read + len(e.partial)
            raise
        bytes_read += consumed
        return line

    try:
        start_line = next_line()
        fields = start_line.split(" ")
        if len(fields) != 3:
            raise MalformedStartLine(f"Invalid start line: {start_line!r}")
        method, url, protocol = fields

        headers: Dict[str, str] = {}
        host = ""
        close = False

        while True:
            line = next_line()
            if line == "":
                break

            key, value = parse_header_line(line)
            if not is_valid_header(key, value):
                raise InvalidHeader(f"Invalid header: {line!r}")

            headers[key] = value
            if key == "Host":
                host = value
            elif key == "Connection":
                close = value == "close"

        if protocol != SUPPORTED_VERSION:
            raise UnsupportedVersion(f"Unsupported HTTP version: {protocol!r}")

        if method != SUPPORTED_METHOD:
            raise UnsupportedMethod(f"Unsupported HTTP method: {method!r}")

        if not url.startswith("/"):
            raise InvalidURL(f"Invalid URL: {url!r}")

        if url.endswith("/"):
            url += INDEX_FILE

        if not host:
            raise MissingHost("Missing Host header")

    except HTTPParseError as e:
        e.bytes_read = bytes_read
        raise

    return HTTPRequest(
        method=method,
        url=url,
        protocol=protocol,
        headers=headers,
        host=host,
        close=close,
    )
