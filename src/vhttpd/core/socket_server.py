"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Every accepted socket is
wrapped in a Connection and handed to a callback straight away; the
accept loop itself never reads from clients.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   start(handler)                                                     │
    │       ├──► socket() + SO_REUSEADDR + TCP_NODELAY                     │
    │       ├──► bind((host, port))       ← failure is fatal               │
    │       ├──► listen(backlog)                                           │
    │       └──► while running:                                            │
    │               accept()               ← wakes every accept_timeout    │
    │               Connection(sock, addr)                                 │
    │               handler(conn)          ← returns immediately           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FAILURES
=============================================================================

socket.timeout from accept() is the polling tick that lets shutdown()
stop the loop; it is not an error. Any other OSError while the server is
still supposed to be running is fatal: it is logged and re-raised so the
caller (and ultimately the process) exits.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP server.

    Usage:
        def handle(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle)       # blocks until shutdown() or a fatal error
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def address(self) -> Tuple[str, int]:
        """
        Bound (ip, port). With port=0 this is the port the OS picked, once
        the socket is listening.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind right after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Small responses (400/404 heads) should not wait on Nagle
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(self.config.accept_timeout)
        return sock

    def _setup_signals(self):
        """
        SIGTERM/SIGINT trigger a graceful shutdown.

        Python only allows installing handlers from the main thread; when
        the server runs in a background thread (tests, embedding) the
        caller is responsible for calling shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        Blocks until shutdown() is called.

        Raises:
            OSError: Bind/listen failed, or accept() failed while running.
        """
        self._socket = self._create_socket()
        try:
            try:
                self._socket.bind((self.config.host, self.config.port))
                self._socket.listen(self.config.backlog)
            except OSError as e:
                logger.error(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
                raise

            self._bound_address = self._socket.getsockname()[:2]
            self._running = True
            self._setup_signals()

            logger.info(f"Listening on {self.address[0]}:{self.address[1]}")
            self._ready.set()

            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break  # socket closed by shutdown
                logger.error(f"Failed to accept connection: {e}")
                raise

            conn = Connection(
                socket=client_socket,
                address=client_address,
                read_timeout=self.config.read_timeout,
                buffer_size=self.config.buffer_size,
            )
            logger.info(f"[{conn.id}] Accepted connection from {conn.peer}")
            connection_handler(conn)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    def shutdown(self):
        """Stop the accept loop. Idempotent; callable from any thread."""
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready.clear()
        logger.info("Socket server stopped")
