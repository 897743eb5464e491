"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Callable, Generator

import pytest

from vhttpd import HTTPServer, ServerConfig, VirtualHosts
from vhttpd.core import LineReader


INDEX_HTML = b"<!DOCTYPE html>\n<html><body><h1>website1</h1></body></html>\n"
KITTEN_JPG = bytes(range(256)) * 8
SECRET_TXT = b"htdocs2 only\n"


@pytest.fixture
def docroot_dirs(tmp_path: Path) -> Path:
    """
    Two docroots side by side:

        docroot_dirs/
        ├── htdocs1/
        │   ├── index.html
        │   ├── kitten.jpg
        │   ├── notes.unknownext
        │   └── subdir/
        │       └── page.txt
        └── htdocs2/
            ├── index.html
            └── secret.txt
    """
    root = tmp_path / "docroot_dirs"
    htdocs1 = root / "htdocs1"
    htdocs2 = root / "htdocs2"
    (htdocs1 / "subdir").mkdir(parents=True)
    htdocs2.mkdir(parents=True)

    (htdocs1 / "index.html").write_bytes(INDEX_HTML)
    (htdocs1 / "kitten.jpg").write_bytes(KITTEN_JPG)
    (htdocs1 / "notes.unknownext").write_bytes(b"???")
    (htdocs1 / "subdir" / "page.txt").write_bytes(b"sub page\n")
    (htdocs2 / "index.html").write_bytes(b"<html>website2</html>\n")
    (htdocs2 / "secret.txt").write_bytes(SECRET_TXT)
    return root


@pytest.fixture
def virtual_hosts(docroot_dirs: Path) -> VirtualHosts:
    return VirtualHosts({
        "website1": os.path.normpath(str(docroot_dirs / "htdocs1")),
        "website2": os.path.normpath(str(docroot_dirs / "htdocs2")),
    })


@pytest.fixture
def socket_pair() -> Generator[tuple[socket.socket, socket.socket], None, None]:
    """(server side, client side) of a connected socket pair."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


@pytest.fixture
def make_reader() -> Generator[Callable[..., LineReader], None, None]:
    """
    Factory for a LineReader over a socketpair pre-loaded with data.

    With eof=True the writing side is shut down after sending, so the
    reader sees end of stream once data runs out; otherwise it sees a
    silent peer and times out.
    """
    sockets = []

    def factory(data: bytes, timeout: float = 0.5, eof: bool = True) -> LineReader:
        server_side, client_side = socket.socketpair()
        sockets.extend((server_side, client_side))
        client_side.sendall(data)
        if eof:
            client_side.shutdown(socket.SHUT_WR)
        return LineReader(server_side, timeout=timeout)

    yield factory
    for sock in sockets:
        sock.close()


# =============================================================================
# LIVE SERVER
# =============================================================================

READ_TIMEOUT = 0.5


class RunningServer:
    """Server running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        return socket.create_connection(("127.0.0.1", self.port), timeout=timeout)

    def fetch(self, request: bytes, timeout: float = 5.0) -> bytes:
        """Send raw request bytes and read until the server closes."""
        with self.connect(timeout) as sock:
            sock.sendall(request)
            return self.recv_until_closed(sock)

    @staticmethod
    def recv_until_closed(sock: socket.socket) -> bytes:
        chunks = []
        while True:
            try:
                chunk = sock.recv(65536)
            except ConnectionResetError:
                break
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    @staticmethod
    def parse_responses(data: bytes) -> list[tuple[int, dict, bytes]]:
        """
        Split raw bytes into (status, headers, body) triples.

        Bodies are framed by Content-Length.
        """
        responses = []
        while data:
            head, sep, rest = data.partition(b"\r\n\r\n")
            assert sep, f"incomplete response head: {data!r}"
            lines = head.decode("utf-8").split("\r\n")
            protocol, code, _ = lines[0].split(" ", 2)
            assert protocol == "HTTP/1.1"
            headers = {}
            for line in lines[1:]:
                name, _, value = line.partition(": ")
                headers[name] = value
            length = int(headers.get("Content-Length", "0"))
            responses.append((int(code), headers, rest[:length]))
            data = rest[length:]
        return responses

    def parse_response(self, data: bytes) -> tuple[int, dict, bytes]:
        responses = self.parse_responses(data)
        assert len(responses) == 1, f"expected one response, got {len(responses)}"
        return responses[0]


@pytest.fixture
def running_server(virtual_hosts: VirtualHosts) -> Generator[RunningServer, None, None]:
    server = HTTPServer(virtual_hosts, ServerConfig(
        host="127.0.0.1",
        port=0,
        read_timeout=READ_TIMEOUT,
        accept_timeout=0.1,
        log_level="WARNING",
    ))
    running = RunningServer(server)
    running.start()
    yield running
    running.stop()
