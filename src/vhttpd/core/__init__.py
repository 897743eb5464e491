"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER                                                       │
    │  Listening socket, sequential accept loop, hands each new            │
    │  Connection to the HTTP server immediately.                          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION                                                          │
    │  One client socket: state, sendall(), clean close.                   │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  LINE READER                                                         │
    │  Buffered CRLF lines with an inactivity timeout per recv().          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .line_reader import LineReader, LineReadError, ReadTimeout, UnexpectedEOF
from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "LineReader",
    "LineReadError",
    "ReadTimeout",
    "UnexpectedEOF",
]
