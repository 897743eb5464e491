"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Turns (virtual hosts, request, status) into an HTTPResponse and
serializes it to the wire.

=============================================================================
RESOLVING A FILE
=============================================================================

    Host: website1            virtual_hosts["website1"] = /srv/htdocs1
    GET /css/../index.html

        root      = /srv/htdocs1
        candidate = normpath("/srv/htdocs1" + "/css/../index.html")
                  = /srv/htdocs1/index.html              ✓ inside root

    GET /../htdocs2/secret.txt

        candidate = normpath("/srv/htdocs1/../htdocs2/secret.txt")
                  = /srv/htdocs2/secret.txt              ✗ outside → 404

normpath() is purely lexical: it never touches the disk, so the check
does not depend on what happens to exist at the escaped location.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n
    Content-Length: 377\r\n              ┐
    Content-Type: text/html; ...\r\n     │ sorted by name
    Date: Thu, 15 Oct 2026 ... GMT\r\n   │
    Last-Modified: ... GMT\r\n           ┘
    \r\n
    <raw file bytes>

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from .mime_types import get_content_type
from .request import HTTPRequest
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)

PROTOCOL = "HTTP/1.1"


@dataclass
class HTTPResponse:
    """
    One response, built once and written once.

    Attributes:
        status:    200, 400 or 404.
        headers:   Header name → value.
        file_path: File whose bytes form the body; None means no body.
        request:   The request this answers, or None for input that never
                   parsed. Only consulted for the Connection header.
        protocol:  Always "HTTP/1.1".
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    file_path: Optional[str] = None
    request: Optional[HTTPRequest] = field(default=None, repr=False)
    protocol: str = PROTOCOL

    @property
    def status_text(self) -> str:
        return self.status.phrase

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found" """
        return f"{self.protocol} {int(self.status)} {self.status_text}"

    @property
    def closes_connection(self) -> bool:
        return self.headers.get("Connection") == "close"

    def head_bytes(self) -> bytes:
        """Status line, sorted headers and the blank separator line."""
        lines = [self.status_line]
        for name in sorted(self.headers):
            lines.append(f"{name}: {self.headers[name]}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("utf-8")

    def to_bytes(self) -> bytes:
        """
        Complete response ready for socket.sendall().

        Raises:
            OSError: The file disappeared or became unreadable after
                     build_response() stat'ed it.
        """
        if self.file_path is None:
            return self.head_bytes()
        with open(self.file_path, "rb") as f:
            body = f.read()
        return self.head_bytes() + body


# =============================================================================
# DATES
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    RFC 1123 date with a literal GMT zone.

        >>> format_http_date(datetime(2026, 10, 16, 9, 5, 0, tzinfo=timezone.utc))
        'Fri, 16 Oct 2026 09:05:00 GMT'

    Aware datetimes are converted to UTC first.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def _now() -> str:
    return format_http_date(datetime.now(timezone.utc))


# =============================================================================
# BUILDING
# =============================================================================

def is_within_root(path: str, root: str) -> bool:
    """True if path is root itself or lies under it, component-wise."""
    root = os.path.normpath(root)
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


def build_response(
    virtual_hosts: Mapping[str, str],
    request: Optional[HTTPRequest],
    status: int,
) -> HTTPResponse:
    """
    Build the response for request.

    =====================================================================
    DECISION FLOW (status 200)
    =====================================================================

        host not configured            → 404
        normpath(root + url) ∉ root    → 404   (path traversal)
        os.stat() fails                → 404   (missing file)
        not a regular file             → 404   (e.g. a directory)
        otherwise                      → 200 + Content-Length,
                                         Content-Type, Last-Modified

    Any other status is sent as given, without a body and without file
    headers. Date and "Content-Length: 0" are still set on every bodiless
    response so keep-alive clients can frame it.

    =====================================================================

    Args:
        virtual_hosts: Host → docroot (a VirtualHosts or any mapping).
        request: The parsed request, or None when parsing failed.
        status: Status to aim for; 200 may be downgraded to 404.

    Returns:
        The response. Every response carries Date. "Connection: close"
        is set for 400s and whenever the request asked for it.
    """
    status = HTTPStatus(status)
    response = HTTPResponse(status=status, request=request)
    response.headers["Date"] = _now()

    if status == HTTPStatus.OK:
        if request is None:
            raise ValueError("a 200 response needs a request")
        _attach_file(response, virtual_hosts, request)

    if response.file_path is None:
        response.headers["Content-Length"] = "0"

    if status == HTTPStatus.BAD_REQUEST or (request is not None and request.close):
        response.headers["Connection"] = "close"

    return response


def _not_found(response: HTTPResponse) -> None:
    response.status = HTTPStatus.NOT_FOUND
    response.file_path = None


def _attach_file(
    response: HTTPResponse,
    virtual_hosts: Mapping[str, str],
    request: HTTPRequest,
) -> None:
    root = virtual_hosts.get(request.host)
    if not root:
        logger.debug(f"Unknown virtual host {request.host!r}")
        _not_found(response)
        return

    candidate = os.path.normpath(root + request.url)
    if not is_within_root(candidate, root):
        logger.warning(
            f"Trying to access file {candidate} outside document root {root}"
        )
        _not_found(response)
        return

    try:
        file_stat = os.stat(candidate)
    except (OSError, ValueError) as e:
        # ValueError: embedded NUL in the URL
        logger.debug(f"Error getting file info: {e}")
        _not_found(response)
        return

    if not stat.S_ISREG(file_stat.st_mode):
        logger.debug(f"Not a regular file: {candidate}")
        _not_found(response)
        return

    mtime = datetime.fromtimestamp(file_stat.st_mtime, tz=timezone.utc)
    response.file_path = candidate
    response.headers["Content-Length"] = str(file_stat.st_size)
    response.headers["Content-Type"] = get_content_type(candidate)
    response.headers["Last-Modified"] = format_http_date(mtime)
