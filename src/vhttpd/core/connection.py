"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: a LineReader for input, sendall() for
output, a state for logging, and a proper close.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

                       ┌──────────────────────────────┐
                       │                              │ keep-alive
                       ▼                              │
    accept ──► READING_REQUEST ──► RESPONDING ────────┘
                       │                │
                       │                │ Connection: close,
                       │ EOF, timeout,  │ 400, or write failed
                       │ bad request    │
                       ▼                ▼
                    CLOSED ◄────────────┘

Requests on one connection are strictly sequential: the next request is
not read until the previous response has been written.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

from .line_reader import LineReader, DEFAULT_READ_TIMEOUT


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    READING_REQUEST = "reading_request"
    RESPONDING = "responding"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id used as a log prefix.
        state: Current ConnectionState.
        requests_handled: Responses written on this connection so far.
        reader: LineReader owning this socket's receive buffer.
    """

    socket: socket.socket
    address: tuple
    read_timeout: float = DEFAULT_READ_TIMEOUT
    buffer_size: int = 8192

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.READING_REQUEST
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0
    reader: LineReader = field(init=False, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.reader = LineReader(
            self.socket,
            timeout=self.read_timeout,
            buffer_size=self.buffer_size,
        )

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def peer(self) -> str:
        """"ip:port" for log messages."""
        return f"{self.address[0]}:{self.address[1]}"

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a whole response.

        sendall() either sends every byte or raises; send() could stop
        halfway when the kernel buffer is full.

        Returns:
            True if sent, False if the client is gone.
        """
        self.state = ConnectionState.RESPONDING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send to {self.peer} failed: {e}")
            return False
        self.requests_handled += 1
        return True

    def start_reading(self) -> None:
        """Back to READING_REQUEST for the next request (keep-alive)."""
        self.state = ConnectionState.READING_REQUEST

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Safe to call more than once.

        shutdown(SHUT_WR) sends FIN first so the client sees a clean end
        of stream after the last response, then the descriptor is freed.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed {self.peer} after {self.requests_handled} "
            f"responses ({self.age:.2f}s)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
