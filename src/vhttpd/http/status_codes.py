"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The three statuses this server ever sends, and their reason phrases.

    ┌──────┬──────────────┬──────────────────────────────────────────────┐
    │ Code │ Phrase       │ When                                          │
    ├──────┼──────────────┼──────────────────────────────────────────────┤
    │ 200  │ OK           │ File found under the host's docroot           │
    │ 400  │ Bad Request  │ Parse/validation failure, partial request     │
    │ 404  │ Not Found    │ Unknown host, missing file, escapes docroot   │
    └──────┴──────────────┴──────────────────────────────────────────────┘

The phrase table is built once at import and exposed read-only, so every
connection thread can use it without locking.

=============================================================================
"""

from enum import IntEnum
from types import MappingProxyType


class HTTPStatus(IntEnum):
    """
    Status codes as an IntEnum, so they compare equal to plain ints:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return STATUS_PHRASES[self]


STATUS_PHRASES = MappingProxyType({
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
})
