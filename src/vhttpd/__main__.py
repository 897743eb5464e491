"""
=============================================================================
VHTTPD CLI ENTRY POINT
=============================================================================

    # Defaults: port 8080, ./virtual_hosts.yaml, ./docroot_dirs
    python -m vhttpd

    # Explicit paths and port
    python -m vhttpd --port 3000 --vh-config conf/hosts.yaml --docroot /srv/www

    # Verbose logging
    python -m vhttpd --log-level DEBUG

Exit status is 1 when the configuration cannot be loaded or the listener
fails; the server otherwise runs until Ctrl+C / SIGTERM.

=============================================================================
"""

import argparse
import logging
import os
import sys

from . import __version__
from .config import ServerConfig
from .server import HTTPServer
from .virtual_hosts import VirtualHostConfigError, load_virtual_hosts


logger = logging.getLogger("vhttpd")


def build_parser() -> argparse.ArgumentParser:
    cwd = os.getcwd()

    parser = argparse.ArgumentParser(
        prog="vhttpd",
        description="Virtual-hosting static file server (HTTP/1.1, GET only)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m vhttpd                                   # Run with defaults
  python -m vhttpd --port 3000                       # Custom port
  python -m vhttpd --vh-config hosts.yaml --docroot /srv/www
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default="0.0.0.0",
        help="Address to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8080,
        help="Port to listen on (default: 8080)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Inactivity timeout per read, in seconds (default: 5)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # VIRTUAL HOSTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--vh-config",
        default=os.path.join(cwd, "virtual_hosts.yaml"),
        help="Path to the virtual hosts YAML file (default: ./virtual_hosts.yaml)",
    )
    parser.add_argument(
        "--docroot",
        default=os.path.join(cwd, "docroot_dirs"),
        help="Directory containing the docroot directories (default: ./docroot_dirs)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"vhttpd {__version__}",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        read_timeout=args.timeout,
        log_level=args.log_level,
    )
    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger.info("Server configs:")
    logger.info(f"  port: {config.port}")
    logger.info(f"  path to virtual hosts config file: {args.vh_config}")
    logger.info(f"  path to docroot directories: {args.docroot}")

    try:
        virtual_hosts = load_virtual_hosts(args.vh_config, args.docroot)
    except VirtualHostConfigError as e:
        logger.error(str(e))
        return 1

    server = HTTPServer(virtual_hosts, config)
    try:
        server.run()
    except OSError as e:
        logger.error(f"Fatal listener error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
