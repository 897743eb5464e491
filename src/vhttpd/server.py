"""
=============================================================================
VIRTUAL-HOSTING HTTP SERVER
=============================================================================

Ties the pieces together: SocketServer accepts, one thread per
connection runs the read → respond loop, and the response builder maps
requests onto the virtual hosts' docroots.

=============================================================================
PER-CONNECTION LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  read_request()                                                      │
    │     │                                                                │
    │     ├── UnexpectedEOF, 0 bytes ─────────► close (peer hung up)       │
    │     ├── UnexpectedEOF, >0 bytes ────────► 400 + close                │
    │     ├── ReadTimeout, 0 bytes ───────────► close (idle keep-alive)    │
    │     ├── ReadTimeout, >0 bytes ──────────► 400 + close                │
    │     ├── HTTPParseError ─────────────────► 400 + close                │
    │     │                                                                │
    │     └── HTTPRequest                                                  │
    │            │                                                         │
    │            ▼                                                         │
    │         build_response(200) → 200 or 404                             │
    │            │                                                         │
    │            ├── write failed ────────────► close                      │
    │            ├── Connection: close ───────► close                      │
    │            └── otherwise ───────────────► read_request() again       │
    └─────────────────────────────────────────────────────────────────────┘

Nothing that happens on one connection can stop the server or affect
another connection. Only listener failures are fatal.

=============================================================================
"""

import logging
import threading
from typing import Mapping, Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ReadTimeout, UnexpectedEOF
from .http import (
    HTTPRequest, HTTPParseError, HTTPStatus,
    read_request, build_response,
)
from .virtual_hosts import VirtualHosts


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Static-file HTTP/1.1 server with virtual hosting.

    Usage:
        virtual_hosts = load_virtual_hosts("virtual_hosts.yaml", "docroot_dirs")
        server = HTTPServer(virtual_hosts, ServerConfig(port=8080))
        server.run()            # blocks; raises on fatal listener errors

    The virtual host map is read-only for the lifetime of the server and
    shared by every connection thread.
    """

    def __init__(
        self,
        virtual_hosts: Mapping[str, str],
        config: Optional[ServerConfig] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        if not isinstance(virtual_hosts, VirtualHosts):
            virtual_hosts = VirtualHosts(virtual_hosts)
        self.virtual_hosts = virtual_hosts

        self._socket_server = SocketServer(self.config)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self):
        """Bound (ip, port); the real port once listening with port=0."""
        return self._socket_server.address

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving. Blocks until shutdown() or a fatal listener error.

        Raises:
            OSError: Could not bind/listen, or accept() failed.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        logger.info(
            f"Starting server on {self.config.host}:{self.config.port} "
            f"with {len(self.virtual_hosts)} virtual hosts"
        )
        for host_name, docroot in self.virtual_hosts.items():
            logger.info(f"  {host_name} → {docroot}")

        try:
            self._socket_server.start(self._handle_connection)
        finally:
            logger.info("Server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """
        Stop accepting connections.

        Connections already being served finish on their own: each is
        bounded by the read timeout.
        """
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("vhttpd").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to its own thread.

        Called from the accept loop, so it must return immediately.
        """
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """Serve requests on conn until it should be closed."""
        with conn:
            try:
                while self._serve_one(conn):
                    conn.start_reading()
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _serve_one(self, conn: Connection) -> bool:
        """
        Read one request and answer it.

        Returns:
            True to keep the connection open for another request.
        """
        try:
            request = read_request(conn.reader)

        except UnexpectedEOF as e:
            if e.bytes_read == 0:
                logger.info(f"[{conn.id}] Connection closed by {conn.peer}")
                return False
            logger.warning(
                f"[{conn.id}] {conn.peer} closed mid-request after {e.bytes_read} bytes"
            )
            self._send_bad_request(conn)
            return False

        except ReadTimeout as e:
            logger.info(
                f"[{conn.id}] Connection to {conn.peer} timed out after reading "
                f"{e.bytes_read} bytes"
            )
            if e.bytes_read > 0:
                self._send_bad_request(conn)
            return False

        except HTTPParseError as e:
            logger.warning(f"[{conn.id}] Bad request from {conn.peer}: {e}")
            self._send_bad_request(conn)
            return False

        return self._respond(conn, request)

    def _respond(self, conn: Connection, request: HTTPRequest) -> bool:
        response = build_response(self.virtual_hosts, request, HTTPStatus.OK)
        logger.debug(
            f"[{conn.id}] {request.method} {request.host}{request.url} "
            f"→ {int(response.status)}"
        )

        try:
            data = response.to_bytes()
        except OSError as e:
            logger.error(f"[{conn.id}] Failed to read {response.file_path}: {e}")
            return False

        if not conn.send_response(data):
            return False

        if request.close:
            logger.info(f"[{conn.id}] Closing connection to {conn.peer}")
            return False
        return True

    def _send_bad_request(self, conn: Connection):
        response = build_response(self.virtual_hosts, None, HTTPStatus.BAD_REQUEST)
        conn.send_response(response.to_bytes())
        logger.info(f"[{conn.id}] Closing connection to {conn.peer}")
