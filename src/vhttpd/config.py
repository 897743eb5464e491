"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Network, timeout and logging settings for the server, in one dataclass.

The virtual host map is NOT part of this: it comes from
virtual_hosts.load_virtual_hosts() and is handed to HTTPServer
separately, because it is data the server serves rather than a knob
that tunes how it serves.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   CLI flags ──► ServerConfig ──► validate() ──► HTTPServer          │
    │                                     │                               │
    │                                     └── ValueError at startup,      │
    │                                         not hours later             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Development:
        ServerConfig(host="127.0.0.1", port=8080, log_level="DEBUG")

    Serving on all interfaces:
        ServerConfig(host="0.0.0.0", port=80)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Queued connections the kernel holds before refusing new ones."""

    buffer_size: int = 8192
    """Bytes requested per recv()."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: float = 5.0
    """
    Inactivity timeout, re-armed before every read.
    Also the keep-alive idle timeout: a connection that sends nothing for
    this long after its last response is closed.
    """

    accept_timeout: float = 1.0
    """How often the accept loop wakes up to check for shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING or ERROR."""

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")

        if self.accept_timeout <= 0:
            raise ValueError("accept_timeout must be > 0")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log_level: {self.log_level}")
