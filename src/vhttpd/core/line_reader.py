"""
=============================================================================
LINE READER
=============================================================================

Reads CRLF-terminated lines from a client socket, one at a time, with an
inactivity timeout that is re-armed before every recv().

=============================================================================
WHY LINES?
=============================================================================

Everything we accept from a client before the blank line is line-oriented:

    GET /index.html HTTP/1.1\r\n      ← request line
    Host: website1\r\n                ← header
    Connection: close\r\n             ← header
    \r\n                              ← empty line = end of request

Since we only serve GET (no request bodies), reading a request is nothing
more than reading lines until we see an empty one.

=============================================================================
BUFFERING ACROSS CALLS
=============================================================================

recv() hands us whatever the kernel has, not one line:

    recv() → b"GET / HTTP/1.1\r\nHost: web"
              └──── line 1 ────┘└ partial ┘

The bytes after the first terminator are NOT thrown away. They stay in
self._buffer and become the start of the next read_line() call. The same
holds across requests: a client that sends two requests back to back in
one packet gets both answered, in order.

=============================================================================
TIMEOUTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   read_line()                                                        │
    │       │                                                              │
    │       ├──► terminator already buffered? ──► return it                │
    │       │                                                              │
    │       └──► loop:                                                     │
    │              settimeout(timeout)      ← re-armed on EVERY recv       │
    │              recv(buffer_size)                                       │
    │                 ├── timeout  ──► ReadTimeout(partial)                │
    │                 ├── b""      ──► UnexpectedEOF(partial)              │
    │                 └── data     ──► append, look for \r\n again         │
    └─────────────────────────────────────────────────────────────────────┘

A slow client that trickles a byte every few seconds is fine. A client
that goes quiet for longer than the timeout is not.

=============================================================================
"""

import socket
import logging
from typing import Tuple


logger = logging.getLogger(__name__)

CRLF = b"\r\n"

DEFAULT_READ_TIMEOUT = 5.0


class LineReadError(Exception):
    """
    Base class for I/O failures while reading a line.

    Attributes:
        partial: Bytes received after the last complete line.
        bytes_read: Bytes consumed for the current request when the error
                    surfaced. The line reader only knows about the partial
                    line; the request parser adds the lines it already
                    consumed before re-raising.
    """

    def __init__(self, message: str, partial: bytes = b""):
        super().__init__(message)
        self.partial = partial
        self.bytes_read = len(partial)


class ReadTimeout(LineReadError):
    """No terminator arrived within the inactivity timeout."""


class UnexpectedEOF(LineReadError):
    """The peer closed the stream before a terminator arrived."""


class LineReader:
    """
    Buffered CRLF line reader over a socket.

    Usage:
        reader = LineReader(client_socket, timeout=5.0)
        line, consumed = reader.read_line()

    The reader owns the receive buffer for its socket. Only one reader
    should exist per connection, otherwise buffered bytes are split
    between them.
    """

    def __init__(
        self,
        sock: socket.socket,
        timeout: float = DEFAULT_READ_TIMEOUT,
        buffer_size: int = 8192,
    ):
        self.sock = sock
        self.timeout = timeout
        self.buffer_size = buffer_size
        self._buffer = b""

    @property
    def buffered(self) -> int:
        """Number of bytes received but not yet returned as a line."""
        return len(self._buffer)

    def read_line(self) -> Tuple[str, int]:
        """
        Read one line.

        Returns:
            (line, consumed) where line has the CRLF stripped and consumed
            counts the raw bytes of the line including the CRLF.

        Raises:
            ReadTimeout: No terminator within the timeout window.
            UnexpectedEOF: Stream ended before a terminator.
        """
        while True:
            end = self._buffer.find(CRLF)
            if end != -1:
                raw = self._buffer[:end]
                self._buffer = self._buffer[end + len(CRLF):]
                return raw.decode("utf-8", errors="replace"), end + len(CRLF)

            chunk = self._recv()
            if not chunk:
                partial, self._buffer = self._buffer, b""
                raise UnexpectedEOF(
                    f"Stream ended after {len(partial)} bytes without CRLF",
                    partial,
                )
            self._buffer += chunk

    def _recv(self) -> bytes:
        # Re-arm before every read so the window measures inactivity,
        # not total time spent on the line.
        self.sock.settimeout(self.timeout)
        try:
            return self.sock.recv(self.buffer_size)
        except socket.timeout:
            partial, self._buffer = self._buffer, b""
            raise ReadTimeout(
                f"No CRLF within {self.timeout}s ({len(partial)} bytes pending)",
                partial,
            ) from None
        except (ConnectionResetError, BrokenPipeError):
            logger.debug("Connection reset while reading")
            return b""
