"""
=============================================================================
VHTTPD - A VIRTUAL-HOSTING STATIC FILE SERVER
=============================================================================

A small HTTP/1.1 server that serves static files for several websites
from one port, choosing the website by the Host header.

=============================================================================
QUICK START
=============================================================================

    # From the command line
    python -m vhttpd --port 8080 \\
        --vh-config virtual_hosts.yaml --docroot docroot_dirs

    # From code
    from vhttpd import HTTPServer, ServerConfig, load_virtual_hosts

    hosts = load_virtual_hosts("virtual_hosts.yaml", "docroot_dirs")
    HTTPServer(hosts, ServerConfig(port=8080)).run()

=============================================================================
PACKAGE LAYOUT
=============================================================================

    vhttpd/
    ├── __main__.py        Command-line entry point
    ├── config.py          ServerConfig
    ├── server.py          HTTPServer: per-connection request loop
    ├── virtual_hosts.py   Host → docroot mapping, YAML loader
    ├── core/
    │   ├── socket_server.py   Listening socket + accept loop
    │   ├── connection.py      One client connection
    │   └── line_reader.py     CRLF lines with inactivity timeout
    └── http/
        ├── request.py         Request parsing and validation
        ├── response.py        Response building and serialization
        ├── status_codes.py    200 / 400 / 404
        └── mime_types.py      Content-Type by extension

=============================================================================
WHAT IT DOES NOT DO
=============================================================================

GET only. No chunked encoding, no TLS, no range requests, no caching.

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig
from .virtual_hosts import VirtualHosts, VirtualHostConfigError, load_virtual_hosts

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "VirtualHosts",
    "VirtualHostConfigError",
    "load_virtual_hosts",
    "__version__",
]
